import math

import optuna
from optuna.trial import TrialState

from evotune.configs.budget import AlgorithmIdentity, Budget
from evotune.optimization.algorithms.budget_util import get_int_param, to_seed32
from evotune.optimization.search_space.parameter import ParameterSet, ParameterSpace
from .base import BridgedHyperOptimizer, evaluation_cap
from .tuning_bridge import HyperTuningProblem


class BayesianTuner(BridgedHyperOptimizer):
    """
    Sequential model-based search with optuna over the coded hyperparameter vector.

    Every coded dimension is suggested as a float in its bounds; the bridge does
    the decoding. Non-finite trial fitness is reported to optuna as a failed trial.
    """

    @classmethod
    def _make_parameter_space(cls) -> ParameterSpace:
        space = ParameterSpace()
        space.add_integer("trials", 1, 100000, default=50)
        space.add_integer("n_startup_trials", 0, 1000, default=10)
        space.add_categorical("sampler", ["tpe", "random"], default="tpe")
        return space

    @classmethod
    def _make_identity(cls) -> AlgorithmIdentity:
        return AlgorithmIdentity(family="BayesianTuner", implementation="evotune.hyper.optuna", version="1.0")

    @staticmethod
    def _make_sampler(parameters: ParameterSet, seed: int) -> optuna.samplers.BaseSampler:
        if parameters["sampler"] == "random":
            return optuna.samplers.RandomSampler(seed=to_seed32(seed))
        return optuna.samplers.TPESampler(
            n_startup_trials=get_int_param(parameters, "n_startup_trials"),
            seed=to_seed32(seed),
        )

    def _search(self, problem: HyperTuningProblem, budget: Budget,
                parameters: ParameterSet, seed: int) -> int:
        lower, upper = problem.get_bounds()
        n_trials = evaluation_cap(budget, get_int_param(parameters, "trials"))
        study = optuna.create_study(direction="minimize", sampler=self._make_sampler(parameters, seed))

        for _ in range(n_trials):
            trial = study.ask()
            candidate = [
                trial.suggest_float(f"x{i}", float(lo), float(hi))
                for i, (lo, hi) in enumerate(zip(lower, upper))
            ]
            value = problem.fitness(candidate)
            if math.isfinite(value):
                study.tell(trial, value)
            else:
                study.tell(trial, state=TrialState.FAIL)

        return n_trials
