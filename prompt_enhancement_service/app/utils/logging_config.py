# prompt_enhancement_service/app/utils/logging_config.py
import logging
import os
import sys


def setup_logging():
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
    )
    # google-genai logs every HTTP exchange at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"PromptEnhancer Logging configured with level: {log_level_str}")
