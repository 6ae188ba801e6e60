"""
Configuration-related constants and resource limits.
"""

# Maximum config file size (1MB); harness configs are a few lines of YAML
MAX_CONFIG_SIZE_BYTES = 1024 * 1024

DEFAULT_ENV_PREFIX = "KVHARNESS_"

# Environment variable naming the config file when none is passed explicitly
CONFIG_PATH_ENV = "KVHARNESS_CONFIG"

DEFAULT_SERVER_COMMAND = ("cargo", "run", "--release")
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379
