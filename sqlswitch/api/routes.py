from typing import Any, Dict

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from sqlswitch.utils.logger import setup_logger
from sqlswitch.utils.timing import timed

from ..services.sql_conversion import ConversionOptions, ConversionOrchestrator, DialectType
from ..services.sql_conversion.utils.dialect_utils import get_dialect, supported_dialects
from ..services.sql_conversion.utils.result_formatter import create_result_dictionary

api_router = APIRouter(prefix='/api/v1')

# Converters are stateless; one orchestrator serves every request.
orchestrator = ConversionOrchestrator()

# Setup logger for API
logger = setup_logger('api_routes')


def _convert(sql: str, source: DialectType, target: DialectType, options: ConversionOptions) -> Dict[str, Any]:
    result = orchestrator.convert(sql, source, target, options)
    return create_result_dictionary(result, source, target)


@api_router.post('/sql/convert')
def convert_sql_endpoint(payload: Dict[str, Any] = Body(...)):
    """Convert SQL text between two dialects.

    Request body::

        {
            "sql": "SELECT NVL(a, 0) FROM t",
            "source_dialect": "oracle",
            "target_dialect": "mysql",
            "options": {"strict_mode": false}
        }
    """
    try:
        if not payload:
            return JSONResponse({'error': 'No JSON data provided'}, status_code=400)

        sql = payload.get('sql')
        source_name = payload.get('source_dialect')
        target_name = payload.get('target_dialect')
        if not all([sql, source_name, target_name]):
            return JSONResponse({'error': 'Missing required fields: sql, source_dialect, target_dialect'},
                                status_code=400)

        option_overrides = payload.get('options') or {}
        if not isinstance(option_overrides, dict):
            return JSONResponse({'error': 'options must be an object'}, status_code=400)

        source = get_dialect(source_name)
        target = get_dialect(target_name)
        options = ConversionOptions.from_config(option_overrides)

        result_dict = timed(_convert, sql, source, target, options)
        logger.info(f"/sql/convert {source.value} -> {target.value} finished in {result_dict['duration_s']}s")
        return JSONResponse(result_dict)

    except ValueError as ve:
        return JSONResponse({'error': str(ve)}, status_code=400)
    except Exception as e:
        logger.error(f"An unhandled exception occurred in /sql/convert: {e}", exc_info=True)
        return JSONResponse({'error': 'An internal server error occurred.', 'details': str(e)}, status_code=500)


@api_router.get('/dialects')
def list_dialects():
    """Dialect names accepted by /sql/convert."""
    return JSONResponse({'dialects': supported_dialects()})


@api_router.get('/')
def root():
    """Root endpoint of the API.

    Returns a simple JSON message indicating the API is running.
    {
        "message": "API is running"
    }
    """
    return JSONResponse({"message": "API is running"})
