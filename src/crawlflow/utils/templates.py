"""
Jinja2 string templates used for task ids and store keys.

Templates are plain strings such as ``"{{ jobId }}-{{ taskId }}.tif"``.
Undefined variables are errors rather than empty strings, so a typo in a
template never silently produces colliding keys.
"""

from functools import lru_cache
from typing import Any, Dict, Type

from jinja2 import Environment, StrictUndefined, Template, TemplateError

from crawlflow.core.exceptions.custom_exceptions import (
    CrawlFlowError,
    ValidationError,
)

_environment = Environment(undefined=StrictUndefined, autoescape=False)


@lru_cache(maxsize=256)
def compile_template(source: str) -> Template:
    """Compile a template string, cached by source"""
    return _environment.from_string(source)


def render_template(
    source: str,
    variables: Dict[str, Any],
    error_class: Type[CrawlFlowError] = ValidationError,
) -> str:
    """
    Render a template string.

    Raises:
        CrawlFlowError: Instance of ``error_class`` when the template is
            invalid or uses an undefined variable
    """
    if not isinstance(source, str):
        raise error_class(
            f"Template must be a string, got {type(source).__name__}",
            error_code="TEMPLATE_INVALID",
        )
    try:
        return compile_template(source).render(**variables)
    except TemplateError as e:
        raise error_class(
            f"Failed to render template '{source}': {e}",
            error_code="TEMPLATE_INVALID",
            details={"template": source},
        ) from e
