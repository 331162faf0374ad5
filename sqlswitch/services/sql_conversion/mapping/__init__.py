from .registry import MappingRegistry, derive_tibero_rules
from .function_mappings import get_function_registry
from .data_type_mappings import get_data_type_registry

__all__ = [
    'MappingRegistry',
    'derive_tibero_rules',
    'get_function_registry',
    'get_data_type_registry',
]
