import logging
from logging.handlers import RotatingFileHandler

from evoting.core.settings import get_settings

# Create logger
election_logger = logging.getLogger("election")
election_logger.setLevel(logging.INFO)

# Prevent duplicate handlers
if not election_logger.handlers:
    # Rotating file handler: max 5 MB per file, keep 3 backups
    file_handler = RotatingFileHandler(
        get_settings().log_file, maxBytes=5 * 1024 * 1024, backupCount=3
    )
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    file_handler.setFormatter(formatter)
    election_logger.addHandler(file_handler)
