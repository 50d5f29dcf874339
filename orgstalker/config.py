"""Settings read from environment variables."""

import os


# Activity window for pull requests, issues and commit charts
PAST_DAYS_AMOUNT_TO_CRAWL = int(os.getenv("PAST_DAYS_AMOUNT_TO_CRAWL", "7"))

GITHUB_GRAPHQL_URL = os.getenv("GITHUB_GRAPHQL_URL", "https://api.github.com/graphql")

# Pause crawling once the remaining quota drops to this value
RATE_LIMIT_BUFFER = int(os.getenv("RATE_LIMIT_BUFFER", "100"))


def postgres_connection_string() -> str:
    """Build a libpq connection string from the POSTGRES_* variables."""
    db_host = os.getenv("POSTGRES_HOST", "localhost")
    db_port = os.getenv("POSTGRES_PORT", "5432")
    db_name = os.getenv("POSTGRES_DB", "orgstalker")
    db_user = os.getenv("POSTGRES_USER", "postgres")
    db_password = os.getenv("POSTGRES_PASSWORD", "postgres")

    return (
        f"host={db_host} port={db_port} dbname={db_name} "
        f"user={db_user} password={db_password}"
    )
