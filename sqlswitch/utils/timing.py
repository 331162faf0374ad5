from time import perf_counter
from typing import Any, Callable, Dict

def timed(func: Callable, *args: Any, **kwargs: Any) -> Dict[str, Any]:
    """Run *func* and return its result dict augmented with duration_s.

    Results exposing ``to_dict()`` (such as ``ConversionResult``) are converted
    first so the API layer always gets a plain dict back.
    """
    start = perf_counter()
    result = func(*args, **kwargs)
    if hasattr(result, "to_dict"):
        result = result.to_dict()
    if isinstance(result, dict):
        result["duration_s"] = round(perf_counter() - start, 4)
    return result
