import os

# Keep test runs from writing log files
os.environ.setdefault("LOGGING__LOG_TO_FILE", "false")
os.environ.setdefault("LOGGING__LOG_STD_LEVEL", "WARNING")
