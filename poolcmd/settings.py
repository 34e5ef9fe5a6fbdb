"""
This module contains the configuration defaults for poolcmd.
It defines paths, instance lifecycle timeouts and front door settings.
Every uppercase name here can be overridden from the environment (or a `.env`
file) and, for the names in MODIFIABLE_SETTINGS, from the overrides JSON file.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)

#* --- Core Paths ---
BASE_DIR = pathlib.Path.cwd()
OVERRIDES_JSON_PATH = pathlib.Path(os.getenv("POOLCMD_OVERRIDES", str(BASE_DIR / "poolcmd.overrides.json")))

#* --- Instance Defaults ---
DEFAULT_COMMAND = "echo"
DEFAULT_INSTANCE_HOST = "localhost"
DEFAULT_PORT_ARGUMENT_NAME = "port"
DEFAULT_INSTANCE_PORT = int(os.getenv("POOLCMD_DEFAULT_PORT", "3001"))
PORT_PLACEHOLDER = "{PORT}"

#* --- Lifecycle Settings ---
# 0 disables the readiness timeout and waits forever.
READY_TIMEOUT_SECONDS = float(os.getenv("POOLCMD_READY_TIMEOUT", "60"))
GRACEFUL_SHUTDOWN_TIMEOUT = float(os.getenv("POOLCMD_SHUTDOWN_TIMEOUT", "10"))  # seconds before force-killing
STREAM_CHUNK_SIZE = 4096

#* --- Front Door Settings ---
FRONT_DOOR_HOST = os.getenv("POOLCMD_FRONT_DOOR_HOST", "127.0.0.1")
DEFAULT_FRONT_DOOR_PORT = 80
RESTART_REQUEST_TIMEOUT = float(os.getenv("POOLCMD_RESTART_TIMEOUT", "120"))
FRONT_DOOR_PROCESS_TITLE = "PoolCmd - Front Door"

#* --- Application variables ---
VERBOSE_LOGGING = False

#* --- MODIFIABLE SETTINGS (Changeable through the overrides file) ---
MODIFIABLE_SETTINGS = {
    "READY_TIMEOUT_SECONDS",
    "GRACEFUL_SHUTDOWN_TIMEOUT",
    "RESTART_REQUEST_TIMEOUT",
    "FRONT_DOOR_HOST",
    "DEFAULT_INSTANCE_PORT",
}
