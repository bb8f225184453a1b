"""Argument parsing functionality for npm-fetch."""

import argparse


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="npm-fetch",
        description=(
            "Resolve an npm package against a pessimistic (~>) version "
            "constraint and download its tarball"
        ),
        add_help=True,
    )

    parser.add_argument("package",
                        help="Package name, e.g. left-pad or @scope/name",
                        type=str)
    parser.add_argument("version",
                        help="Version constraint, read as '~> VERSION' (e.g. 1.2.3, 1.2, ~> 1)",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to YAML config with an npm_gateway section",
                        action="store", type=str,
                        required=True)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Copy the downloaded tarball to this path instead of leaving it in the temp directory",
                        action="store",
                        type=str)
    parser.add_argument("--resolve-only",
                        dest="RESOLVE_ONLY",
                        help="Print the resolved version and tarball URL without downloading",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default="INFO")

    return parser.parse_args(argv)
