from .partition_converter import PartitionConverter, get_partition_info
from .procedure_body_converter import ProcedureBodyConverter, mysql_declare_section
from .trigger_converter import TriggerConverter, extract_triggers, parse_trigger, validate_trigger
from .package_converter import PackageConverter, parse_package, parse_routine
from .routine_converter import RoutineConverter
from .materialized_view_converter import MaterializedViewConverter
from .vendor_runtime_converter import VendorRuntimeConverter, get_used_packages, has_vendor_calls
from .hint_converter import HintConverter, HintInfo, extract_hints, parse_hints, remove_all_hints
from .sequence_converter import SequenceConverter, parse_sequence_options

__all__ = [
    'PartitionConverter',
    'ProcedureBodyConverter',
    'TriggerConverter',
    'PackageConverter',
    'RoutineConverter',
    'MaterializedViewConverter',
    'VendorRuntimeConverter',
    'HintConverter',
    'SequenceConverter',
    'HintInfo',
    'extract_hints',
    'extract_triggers',
    'get_partition_info',
    'get_used_packages',
    'has_vendor_calls',
    'mysql_declare_section',
    'parse_hints',
    'parse_package',
    'parse_routine',
    'parse_sequence_options',
    'parse_trigger',
    'remove_all_hints',
    'validate_trigger',
]
