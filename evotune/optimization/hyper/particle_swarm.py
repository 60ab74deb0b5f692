from evotune.configs.budget import AlgorithmIdentity, Budget, RunStatus
from evotune.optimization.algorithms.budget_util import get_int_param
from evotune.optimization.algorithms.particle_swarm import ParticleSwarm
from evotune.optimization.search_space.parameter import ParameterSet, ParameterSpace, ParameterValidationError
from evotune.utils.logger import get_logger
from .base import BridgedHyperOptimizer
from .tuning_bridge import HyperTuningProblem

logger = get_logger(__name__)


class ParticleSwarmTuner(BridgedHyperOptimizer):
    """
    Particle swarm search over the coded hyperparameter vector.

    The swarm is the inner ParticleSwarm algorithm run on the tuning problem
    itself. When ``population_size`` is not configured the swarm has
    ``max(4 * d, d + 1)`` particles for ``d`` coded dimensions, reduced to fit the
    evaluation budget. With ``parallel_evaluations`` above one, each generation's
    particles are evaluated on a thread pool. A budget too small for the
    initial swarm is a ParameterValidationError.
    """

    @classmethod
    def _make_parameter_space(cls) -> ParameterSpace:
        space = ParameterSpace()
        space.add_integer("population_size", 2, 1000)
        space.add_integer("generations", 1, 10000, default=20)
        space.add_continuous("omega", 0.0, 1.0, default=0.7298)
        space.add_continuous("eta1", 0.0, 4.0, default=2.05)
        space.add_continuous("eta2", 0.0, 4.0, default=2.05)
        space.add_continuous("max_velocity", 0.01, 1.0, default=0.5)
        space.add_integer("parallel_evaluations", 1, 64, default=1)
        return space

    @classmethod
    def _make_identity(cls) -> AlgorithmIdentity:
        return AlgorithmIdentity(family="ParticleSwarmTuner", implementation="evotune.hyper.pso", version="1.0")

    def _parallel_evaluations(self, parameters: ParameterSet) -> int:
        return get_int_param(parameters, "parallel_evaluations")

    def _search(self, problem: HyperTuningProblem, budget: Budget,
                parameters: ParameterSet, seed: int) -> int:
        dim = problem.dimension()
        swarm_size = parameters.get("population_size") or max(4 * dim, dim + 1)
        if budget.function_evaluations is not None:
            swarm_size = min(swarm_size, budget.function_evaluations)
        swarm_size = max(swarm_size, 2)

        swarm = ParticleSwarm()
        swarm.configure({
            "population_size": swarm_size,
            "generations": parameters["generations"],
            "omega": parameters["omega"],
            "eta1": parameters["eta1"],
            "eta2": parameters["eta2"],
            "max_velocity": parameters["max_velocity"],
        })

        result = swarm.run(problem, budget, seed)
        if result.status == RunStatus.INVALID_CONFIGURATION:
            logger.warning(f"Swarm could not start: {result.message}")
            raise ParameterValidationError(f"swarm could not start: {result.message}")
        if result.status == RunStatus.INTERNAL_ERROR:
            raise RuntimeError(result.message)
        return result.budget_usage.generations
