"""
AWS Lambda entry point.

Configuration is read from the environment on cold start; see ScalerConfig.
"""

import logging
from functools import lru_cache

from .handler import ScaleHandler, create_context
from .scaler_config import ScalerConfig


logger = logging.getLogger('scaler')


@lru_cache(maxsize=1)
def get_handler() -> ScaleHandler:
    """Build the handler once per process. Raises ConfigError if misconfigured."""
    config = ScalerConfig.from_env()
    logging.getLogger().setLevel(logging.getLevelName(config.log_level))
    logger.info("Cold starting image scaling lambda")
    return ScaleHandler(create_context(config, logger=logger))


def handler(event, context):
    """Lambda handler returning an API gateway proxy response dict."""
    return get_handler().handle_event(event).to_dict()
