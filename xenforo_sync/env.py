import os

os.environ["PYDANTIC_ERRORS_INCLUDE_URL"] = "0"
RUNNING_IN_IDE = bool(os.getenv("PYCHARM_HOSTED") or os.getenv("TERM_PROGRAM") == "vscode")
DEBUG_VAR = bool(os.getenv("XFSYNC_DEBUG")) or RUNNING_IN_IDE
CONFIG_FILE = os.getenv("XFSYNC_CONFIG")
