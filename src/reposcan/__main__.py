"""
reposcan - scan a GitHub repository with external security tools.

    python -m reposcan serve [--host HOST] [--port PORT]
    python -m reposcan scan https://github.com/owner/repo [--json]
"""
import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from .config import Settings
from .errors import ValidationError
from .jobs import ScanStatus
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="reposcan",
        description="Scan GitHub repositories for security vulnerabilities.",
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Run the HTTP API')
    serve.add_argument('--host', default=DEFAULT_HOST,
                       help=f'Interface to bind (default: {DEFAULT_HOST})')
    serve.add_argument('--port', type=int, default=DEFAULT_PORT,
                       help=f'Port to listen on (default: {DEFAULT_PORT})')

    scan = subparsers.add_parser('scan', help='Scan one repository and print the findings')
    scan.add_argument('repo_url', help='Repository URL, e.g. https://github.com/owner/repo')
    scan.add_argument('--json', action='store_true', dest='as_json',
                      help='Print the full job as JSON')

    return parser.parse_args(argv)


def print_summary(job) -> None:
    print(f"Scan {job.id}: {job.status.value}")
    print(f"Repository: {job.repo_url}")
    if job.languages:
        print(f"Languages:  {', '.join(job.languages)}")
    if job.error:
        print(f"Error:      {job.error}")
    if job.status is not ScanStatus.COMPLETED:
        return
    print(f"Findings:   {len(job.findings)}")
    for finding in job.findings:
        location = finding.file_path
        if finding.line_number:
            location += f":{finding.line_number}"
        print(f"  [{finding.severity.value.upper():8}] {finding.tool:13} {location} - {finding.description}")
        if finding.remediation:
            print(f"             remediation: {finding.remediation}")


def run_scan(settings: Settings, repo_url: str, as_json: bool) -> int:
    from .service import build_service

    service = build_service(settings)
    try:
        try:
            job = service.start_scan(repo_url)
        except ValidationError as e:
            print(f"error: {e.message}", file=sys.stderr)
            if e.example:
                print(f"       {e.example}", file=sys.stderr)
            return 2
        try:
            job = service.wait(job.id)
        except KeyboardInterrupt:
            logger.warning("Interrupted, cancelling scan")
            service.cancel_scan(job.id)
            job = service.wait(job.id)
    finally:
        service.shutdown()

    if as_json:
        print(json.dumps(job.to_dict(), indent=2))
    else:
        print_summary(job)
    return 0 if job.status is ScanStatus.COMPLETED else 1


def serve(settings: Settings, host: str, port: int) -> int:
    import uvicorn

    from .api.main import create_app

    uvicorn.run(create_app(app_settings=settings), host=host, port=port, log_config=None)
    return 0


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)
    settings = Settings()

    level = "DEBUG" if args.verbose else settings.LOG_LEVEL
    configure_logging(level, secrets=[settings.GITHUB_TOKEN, settings.OPENAI_API_KEY])

    if args.command == 'serve':
        return serve(settings, args.host, args.port)
    return run_scan(settings, args.repo_url, args.as_json)


if __name__ == "__main__":
    sys.exit(main())
