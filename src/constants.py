"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3
    CONFIG_ERROR = 4


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    CONFIG_SECTION = "npm_gateway"
    ENV_AUTHORIZATION = "NPM_GATEWAY_AUTHORIZATION"
    ENV_LOG_LEVEL = "NPM_FETCH_LOG_LEVEL"
    REGISTRY_SCHEME = "https"
    REQUEST_TIMEOUT = 10  # Timeout in seconds for each HTTP request
    USER_AGENT = "npm-fetch/0.1"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    ARTIFACT_SUFFIX = ".tar"
    PESSIMISTIC_OPERATOR = "~>"
