"""npm registry gateway: configuration, errors and the artifact fetcher."""
