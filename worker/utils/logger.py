import logging
from typing import Optional

def get_logger(name: Optional[str] = None, level: str = "info") -> logging.Logger:
	logger = logging.getLogger(name or "Worker")
	if not logger.hasHandlers():
		handler = logging.StreamHandler()
		formatter = logging.Formatter(
			'[%(asctime)s] %(levelname)s %(name)s: %(message)s',
			datefmt='%Y-%m-%d %H:%M:%S'
		)
		handler.setFormatter(formatter)
		logger.addHandler(handler)
	logger.setLevel(level.upper())
	return logger

def setup_logger(level: str = "info"):
	logger = get_logger(level=level)
	logger.info("Worker logger initialized")
	return logger
