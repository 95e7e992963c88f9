"""CLI for webclient-filters: send one request through an authentication filter chain."""

import logging
import sys

import click
import httpx

from .client import WebClient
from .config import AuthConfig, AuthType, ClientConfig
from .errors import WebClientError
from .filters import LoggingFilter

AUTH_TYPE_CHOICES = click.Choice(
    [
        "none",
        "basic",
        "basic-if-needed",
        "bearer",
        "bearer-refresh",
    ],
    case_sensitive=False,
)

AUTH_TYPE_MAP = {
    "none": AuthType.NONE,
    "basic": AuthType.HTTP_BASIC,
    "basic-if-needed": AuthType.HTTP_BASIC_IF_NEEDED,
    "bearer": AuthType.HTTP_BEARER,
    "bearer-refresh": AuthType.OAUTH2_BEARER_REFRESH,
}


def parse_header(value: str) -> tuple[str, str]:
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise click.BadParameter(f"expected 'Name: value', got {value!r}", param_hint="--header")
    return name.strip(), header_value.strip()


@click.group()
def main():
    """HTTP client whose authentication runs as request filters."""
    pass


@main.command()
@click.argument("url")
@click.option("--method", "-X", default="GET", show_default=True, help="HTTP method")
@click.option("--header", "-H", "headers", multiple=True, help="Extra header, 'Name: value'")
@click.option("--data", "-d", help="Request body")
@click.option(
    "--auth-type",
    "-a",
    type=AUTH_TYPE_CHOICES,
    default="none",
    envvar="WEBCLIENT_AUTH_TYPE",
    help="Authentication type",
)
@click.option("--username", "-u", envvar="WEBCLIENT_USERNAME", help="Username")
@click.option("--password", "-p", envvar="WEBCLIENT_PASSWORD", help="Password")
@click.option("--bearer-token", envvar="WEBCLIENT_BEARER_TOKEN", help="Bearer token")
@click.option("--token-url", help="OAuth2 token endpoint (bearer-refresh)")
@click.option("--client-id", envvar="WEBCLIENT_CLIENT_ID", help="OAuth2 client ID")
@click.option("--client-secret", envvar="WEBCLIENT_CLIENT_SECRET", help="OAuth2 client secret")
@click.option("--scope", default="", help="OAuth2 scope")
@click.option("--timeout", default=30.0, show_default=True, help="Per-exchange timeout in seconds")
@click.option("--include", "-i", is_flag=True, help="Print status line and response headers")
@click.option("--verbose", "-v", is_flag=True, help="Log filter decisions to stderr")
def request(
    url: str,
    method: str,
    headers: tuple[str, ...],
    data: str | None,
    auth_type: str,
    username: str | None,
    password: str | None,
    bearer_token: str | None,
    token_url: str | None,
    client_id: str | None,
    client_secret: str | None,
    scope: str,
    timeout: float,
    include: bool,
    verbose: bool,
):
    """Send a request to URL and print the response body.

    \b
    Authentication types (--auth-type):
      none              No authentication
      basic             HTTP Basic on every request (--username, --password)
      basic-if-needed   HTTP Basic only after a 401 (--username, --password)
      bearer            Fixed bearer token (--bearer-token)
      bearer-refresh    Bearer token refreshed from --token-url after a 401
                        (--username/--password or --client-id/--client-secret)

    \b
    Exit status is 0 for 1xx-3xx responses and 1 for 4xx/5xx.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    config = ClientConfig(
        timeout=timeout,
        headers=[parse_header(h) for h in headers],
        auth=AuthConfig(
            auth_type=AUTH_TYPE_MAP[auth_type],
            username=username,
            password=password,
            bearer_token=bearer_token,
            token_url=token_url,
            client_id=client_id,
            client_secret=client_secret,
            scope=scope,
        ),
    )

    try:
        client = WebClient.from_config(config)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    if verbose:
        client = client.filter(LoggingFilter())

    try:
        with client:
            response = client.exchange(method, url, content=data)
            body = response.read()
    except (httpx.HTTPError, WebClientError) as e:
        raise click.ClickException(str(e)) from e

    if include:
        click.echo(f"HTTP {response.status_code}")
        for name, value in response.headers.multi_items():
            click.echo(f"{name}: {value}")
        click.echo()
    click.echo(body.decode(response.charset, errors="replace"))

    if response.is_error:
        sys.exit(1)


if __name__ == "__main__":
    main()
