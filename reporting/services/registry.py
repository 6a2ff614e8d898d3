"""
Reporting Engine - Function Registries

Report schemas reference executable behaviour by string id. Each registry
maps an id to a plain function so schemas stay serializable and the
functions can be tested on their own.
"""

from typing import Callable, Dict, List

from reporting.utils.error_handling import SchemaError


class FunctionRegistry:
    """Named lookup of functions of one kind."""
    
    def __init__(self, kind: str):
        self.kind = kind
        self._functions: Dict[str, Callable] = {}
    
    def register(self, name: str) -> Callable[[Callable], Callable]:
        """Decorator registering a function under ``name``."""
        def decorator(func: Callable) -> Callable:
            if name in self._functions:
                raise SchemaError(f"Duplicate {self.kind} '{name}'")
            self._functions[name] = func
            return func
        return decorator
    
    def get(self, name: str) -> Callable:
        try:
            return self._functions[name]
        except KeyError:
            raise SchemaError(f"Unknown {self.kind} '{name}'", field=name)
    
    def __contains__(self, name: str) -> bool:
        return name in self._functions
    
    def names(self) -> List[str]:
        return sorted(self._functions)


# (value, *required_values, **bound_parameters) -> display value
FORMATTERS = FunctionRegistry("formatter")

# (row, option_value, field) -> bool
FILTER_EXPRESSIONS = FunctionRegistry("filter expression")

# (rows, field) -> list of option dicts
OPTION_CALCULATORS = FunctionRegistry("option calculator")

# (row) -> "green" | "red" | "yellow" | None
ROW_CLASSIFIERS = FunctionRegistry("row classifier")

# (row) -> bool
ROW_PREDICATES = FunctionRegistry("row predicate")

# (row, date_range) -> value
FIELD_COMPUTES = FunctionRegistry("field compute")


register_formatter = FORMATTERS.register
register_expression = FILTER_EXPRESSIONS.register
register_option_calculator = OPTION_CALCULATORS.register
register_row_classifier = ROW_CLASSIFIERS.register
register_row_predicate = ROW_PREDICATES.register
register_field_compute = FIELD_COMPUTES.register
