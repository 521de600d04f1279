import argparse
import json
import logging
import sys

from matching.app_context import AppContext
from matching.config_loader import load_config
from matching.models import Job, UserPreferences

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_json(path):
    with open(path, "r") as f:
        return json.load(f)


def load_jobs(path):
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("jobs", [])
    return [Job.from_dict(item) for item in data]


def load_users(path):
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("users", [data])
    return [UserPreferences.from_dict(item) for item in data]


def run_matching(ctx, jobs, users, strategy=None):
    """Match every user against the job pool; returns JSON-ready outcomes."""
    outcomes = ctx.orchestrator.generate_outcomes_for_users(users, jobs, strategy=strategy)
    return [outcome.to_dict() for outcome in outcomes]


def run_embeddings(ctx, jobs):
    if ctx.embedding_service is None:
        logger.warning("Embedding service disabled (enable embedding.enabled and set an API key)")
        return 0
    embeddings = ctx.embedding_service.batch_generate_job_embeddings(jobs)
    return ctx.embedding_service.store_job_embeddings(embeddings)


def main():
    parser = argparse.ArgumentParser(description="Job Match Core")
    parser.add_argument('--jobs', required=True, help='JSON file with a list of jobs (or {"jobs": [...]})')
    parser.add_argument('--users', required=True, help='JSON file with one user or a list of users')
    parser.add_argument('--config', default='config.yaml', help='Path to config.yaml')
    parser.add_argument('--strategy', choices=['hybrid', 'ai_only', 'fallback_only'], default=None,
                        help='Override the configured matching strategy')
    parser.add_argument('--embed', action='store_true', help='Also generate job embeddings')
    parser.add_argument('--output', default=None, help='Write results to this file instead of stdout')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config)
    ctx = AppContext.build(config)

    jobs = load_jobs(args.jobs)
    users = load_users(args.users)
    logger.info(f"Loaded {len(jobs)} jobs and {len(users)} users")

    if args.embed:
        stored = run_embeddings(ctx, jobs)
        logger.info(f"Embedded {stored} jobs")

    outcomes = run_matching(ctx, jobs, users, strategy=args.strategy)

    payload = json.dumps({'results': outcomes}, indent=2)
    if args.output:
        with open(args.output, "w") as f:
            f.write(payload)
        logger.info(f"Wrote results for {len(outcomes)} users to {args.output}")
    else:
        sys.stdout.write(payload + "\n")


if __name__ == "__main__":
    main()
