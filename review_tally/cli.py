"""Typer CLI for the organization review tally."""

from __future__ import annotations

import sys
from typing import Annotated

import typer
from pydantic import ValidationError

from review_tally.aggregator import collect_reviewer_records
from review_tally.config import (
    DEFAULT_ORGANIZATION,
    DEFAULT_REPOSITORY,
    DEFAULT_TIMEOUT_SECONDS,
    OutputFormat,
    ReportSettings,
)
from review_tally.github_client import (
    GitHubApiError,
    GitHubInputError,
    GitHubTransportError,
    build_github_client,
)
from review_tally.logger import configure_logging, get_logger
from review_tally.output import ReportOutputError, write_report

logger = get_logger(__name__)

app = typer.Typer(
    help="List organization members by the number of pull requests they reviewed."
)


def _build_settings(**values: object) -> ReportSettings:
    """Validate CLI values into settings, reporting failures as usage errors."""
    try:
        return ReportSettings.model_validate(values)
    except ValidationError as error:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in issue['loc'])}: {issue['msg']}"
            for issue in error.errors()
        )
        raise typer.BadParameter(problems) from error


@app.command()
def report_command(
    organization: Annotated[
        str, typer.Option(help="Organization whose members are listed.")
    ] = DEFAULT_ORGANIZATION,
    repository: Annotated[
        str, typer.Option(help="Repository, inside the organization, to count reviews in.")
    ] = DEFAULT_REPOSITORY,
    token: Annotated[
        str,
        typer.Option(
            help=(
                "GitHub API token. Without one, calls are unauthenticated and get "
                "much lower rate limits. Create one at https://github.com/settings/tokens."
            ),
            show_default=False,
        ),
    ] = "",
    output: Annotated[
        str,
        typer.Option(
            "--output",
            "-o",
            help="Output type: text|json. json and unknown types print text.",
        ),
    ] = "",
    timeout_seconds: Annotated[
        int, typer.Option(help="GitHub API timeout in seconds for each call.")
    ] = DEFAULT_TIMEOUT_SECONDS,
    trust_env: Annotated[
        bool,
        typer.Option(
            "--trust-env/--no-trust-env",
            help="Use proxy/SSL environment variables from the current shell.",
        ),
    ] = True,
    with_pull_requests: Annotated[
        bool,
        typer.Option(help="Add a column counting pull requests each member did not author."),
    ] = False,
    verbose: Annotated[bool, typer.Option(help="Log per-member progress.")] = False,
) -> None:
    """Print members sorted by reviewed pull requests, skipping those with none."""
    configure_logging(verbose=verbose)
    settings = _build_settings(
        organization=organization,
        repository=repository,
        token=token,
        output=output,
        timeout_seconds=timeout_seconds,
        trust_env=trust_env,
        include_pull_requests=with_pull_requests,
    )
    requested_output = output.strip().lower()
    if requested_output and requested_output != settings.output.value:
        logger.warning("Unknown output type '%s'; printing the text table.", output)
    if settings.output is OutputFormat.JSON:
        logger.warning("JSON output is not implemented yet; printing the text table.")
    if not settings.token:
        logger.info("No token given; using unauthenticated GitHub API rate limits.")

    try:
        with build_github_client(
            settings.token,
            settings.timeout_seconds,
            trust_env=settings.trust_env,
        ) as client:
            records = collect_reviewer_records(client=client, settings=settings)
        write_report(
            records,
            sys.stdout,
            include_pull_requests=settings.include_pull_requests,
        )
    except GitHubApiError as error:
        logger.error(
            "GitHub API request failed for %s: status=%s endpoint=%s.",
            settings.organization,
            error.status_code,
            error.endpoint,
        )
        raise typer.Exit(code=1) from error
    except GitHubTransportError as error:
        logger.error("GitHub API unreachable: %s", error)
        raise typer.Exit(code=1) from error
    except GitHubInputError as error:
        logger.error("Invalid input: %s", error)
        raise typer.Exit(code=1) from error
    except ImportError as error:
        logger.error(
            "Proxy transport dependency is missing. "
            "Try `review-tally --no-trust-env`, or install `httpx[socks]`."
        )
        raise typer.Exit(code=1) from error
    except ReportOutputError as error:
        logger.error("%s", error)
        raise typer.Exit(code=1) from error


if __name__ == "__main__":
    app()
