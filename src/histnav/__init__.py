from loguru import logger

# Silent by default; applications opt in with logger.enable("histnav").
logger.disable("histnav")
