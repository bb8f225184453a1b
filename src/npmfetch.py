"""npm-fetch - resolve and download npm package tarballs."""
import logging
import os
import shutil
import sys

from constants import ExitCodes
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from gateway.config import load_gateway_config
from gateway.errors import (
    ConfigError,
    GatewayError,
    DecodeError,
    NetworkError,
    ResolutionError,
    ResponseReadError,
    StreamCopyError,
    TempStorageError,
)
from gateway.npm import NpmGateway

logger = logging.getLogger(__name__)


def exit_code_for(exc: Exception) -> ExitCodes:
    """Map a failure to the process exit code."""
    if isinstance(exc, ConfigError):
        return ExitCodes.CONFIG_ERROR
    if isinstance(exc, (ResolutionError, DecodeError)):
        return ExitCodes.RESOLUTION_ERROR
    if isinstance(exc, (NetworkError, ResponseReadError, StreamCopyError)):
        return ExitCodes.CONNECTION_ERROR
    if isinstance(exc, (TempStorageError, OSError)):
        return ExitCodes.FILE_ERROR
    return ExitCodes.CONNECTION_ERROR


def _save_artifact(handle, output: str) -> str:
    """Copy the temp artifact to ``output`` and remove the temp file."""
    temp_path = handle.name
    try:
        with open(output, "wb") as out:
            shutil.copyfileobj(handle, out)
    except OSError as exc:
        logger.error("Could not write %s (%s); downloaded artifact kept at %s", output, exc, temp_path)
        raise
    finally:
        handle.close()
    os.unlink(temp_path)
    return output


def run(args) -> int:
    """Run one resolve/download with parsed arguments and return the exit code."""
    try:
        config = load_gateway_config(args.CONFIG)
    except ConfigError as exc:
        logger.critical("Configuration error: %s", exc)
        return ExitCodes.CONFIG_ERROR.value

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="run", package=args.package),
        )

    with NpmGateway(config) as gateway:
        try:
            if args.RESOLVE_ONLY:
                resolution = gateway.resolve(args.package, args.version)
                print(f"{args.package}@{resolution.version} {resolution.tarball}")
                return ExitCodes.SUCCESS.value

            handle = gateway.download_package(args.package, args.version)
            path = handle.name
            if args.OUTPUT:
                path = _save_artifact(handle, args.OUTPUT)
            else:
                handle.close()
            print(path)
        except (GatewayError, OSError) as exc:
            code = exit_code_for(exc)
            logger.error("%s", exc)
            return code.value
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
