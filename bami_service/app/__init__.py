# bami_service/app/__init__.py
import logging

logger = logging.getLogger(__name__)
logger.info("BAMI Tracker App Initialized")
