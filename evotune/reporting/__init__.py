from .run_logger import JsonlLogger, RunLogger, RunRecord, load_run_log, serialize_run_record

__all__ = [
    'JsonlLogger',
    'RunLogger',
    'RunRecord',
    'load_run_log',
    'serialize_run_record',
]
