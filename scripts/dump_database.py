#!/usr/bin/env python3
"""Script to dump stored organization graphs to JSON and external repositories to CSV."""

import logging
import sys
import os
import csv
import json
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import psycopg2
from psycopg2.extras import RealDictCursor

from orgstalker import config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def fetch_organizations():
    """Load every stored organization graph document."""
    conn = psycopg2.connect(config.postgres_connection_string())
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("SELECT name, graph, saved_at FROM organizations ORDER BY name")
            return cur.fetchall()
    finally:
        conn.close()


def dump_to_json(rows, output_file: str):
    """Dump organization graphs to JSON."""
    data = [
        {"name": row["name"], "saved_at": row["saved_at"].isoformat(), "graph": row["graph"]}
        for row in rows
    ]
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    logger.info(f"Dumped {len(data)} organizations to {output_file}")


def dump_external_repos_to_csv(rows, output_file: str):
    """Dump one CSV line per external repository with its contributors' logins."""
    fieldnames = [
        "organization", "id", "name", "url", "programming_language", "license",
        "stars", "forks", "commits", "issues", "pull_requests", "contributors",
    ]
    count = 0
    with open(output_file, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            graph = row["graph"]
            members = graph.get("members", {})
            for repo in graph.get("external_repos", {}).values():
                logins = [
                    members.get(member_id, {}).get("login") or member_id
                    for member_id in repo.get("contributors") or []
                ]
                writer.writerow({
                    "organization": row["name"],
                    "id": repo["id"],
                    "name": repo["name"],
                    "url": repo["url"],
                    "programming_language": repo["programming_language"],
                    "license": repo["license"],
                    "stars": repo["stars"],
                    "forks": repo["forks"],
                    "commits": repo["amount_previous_commits"],
                    "issues": repo["amount_previous_issues"],
                    "pull_requests": repo["amount_previous_pull_requests"],
                    "contributors": ";".join(logins),
                })
                count += 1

    logger.info(f"Dumped {count} external repositories to {output_file}")


def main():
    """Dump database to JSON and CSV."""
    try:
        output_dir = os.getenv("OUTPUT_DIR", "artifacts")
        os.makedirs(output_dir, exist_ok=True)

        rows = fetch_organizations()
        if not rows:
            logger.warning("No data to dump")
            return 0

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        json_file = os.path.join(output_dir, f"organizations_{timestamp}.json")
        csv_file = os.path.join(output_dir, f"external_repos_{timestamp}.csv")

        dump_to_json(rows, json_file)
        dump_external_repos_to_csv(rows, csv_file)

        logger.info(f"Database dump completed. Files: {json_file}, {csv_file}")
        return 0
    except Exception as e:
        logger.error(f"Database dump failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
