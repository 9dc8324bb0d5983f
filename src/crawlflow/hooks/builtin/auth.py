"""
Authentication hooks.
"""

import base64
from typing import Any, Dict

from crawlflow.core.exceptions.custom_exceptions import ConfigurationError
from crawlflow.core.logging.logger import get_logger
from crawlflow.hooks.context import HookContext, Phase, ensure_phase
from crawlflow.utils.objects import get_path

logger = get_logger(__name__)


def basic_auth(options: Dict[str, Any]):
    """
    Add a Basic authorization header built from ``auth`` credentials.

    Options:
        type: Header name, defaults to ``Authorization`` (use
            ``Proxy-Authorization`` for proxies)
        optionsPath: Path, inside the processed entity, of the options
            holding ``auth: {user, password}`` and receiving ``headers``;
            defaults to ``options`` (a job can target
            ``taskTemplate.options`` to authenticate all of its tasks)
    """
    header = options.get("type", "Authorization")
    options_path = options.get("optionsPath", "options")

    def hook(context: HookContext) -> HookContext:
        ensure_phase(context, "basicAuth", Phase.BEFORE)

        target = get_path(context.data, options_path)
        if not isinstance(target, dict):
            raise ConfigurationError(
                f"The 'basicAuth' hook found no options at {options_path}",
                details={"hook": "basicAuth", "optionsPath": options_path},
            )

        auth = target.get("auth")
        if not auth:
            logger.debug(f"No credentials for {context.id}, skipping basic auth")
            return context

        credentials = f"{auth.get('user', '')}:{auth.get('password', '')}"
        token = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        headers = target.setdefault("headers", {})
        headers[header] = f"Basic {token}"
        return context

    return hook
