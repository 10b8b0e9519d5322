#!/usr/bin/env python3
"""
CLI tool for WordPress Translation Sync
Registers sites, detects translation plugins and runs syncs over the HTTP API
"""

import json
import os

import click
import requests
import yaml
from tabulate import tabulate

API_BASE_URL = os.getenv("WPSYNC_API_URL", "http://localhost:8000/api/v1")


class WPSyncCLI:
    """CLI client for the sync service API"""

    def __init__(self, base_url: str = API_BASE_URL):
        self.base_url = base_url.rstrip("/")

    def _make_request(self, method: str, endpoint: str, **kwargs):
        """Make HTTP request to the API"""
        url = f"{self.base_url}{endpoint}"
        try:
            response = requests.request(method, url, timeout=300, **kwargs)
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return {}
            return response.json()
        except requests.exceptions.RequestException as e:
            click.echo(f"Error: {e}", err=True)
            if hasattr(e, "response") and e.response is not None:
                try:
                    error_detail = e.response.json()
                    detail = error_detail.get("detail", error_detail)
                    click.echo(f"Detail: {detail}", err=True)
                except (ValueError, json.JSONDecodeError):
                    click.echo(f"Response: {e.response.text}", err=True)
            return None


password_option = click.option(
    "--app-password",
    envvar="WP_APP_PASSWORD",
    prompt=True,
    hide_input=True,
    help="WordPress application password (or set WP_APP_PASSWORD)",
)


@click.group()
@click.option("--api-url", default=API_BASE_URL, help="Sync service API base URL")
@click.pass_context
def cli(ctx, api_url):
    """WordPress Translation Sync CLI"""
    ctx.obj = WPSyncCLI(api_url)


@cli.command()
@click.option("--status", "sync_status", default=None, help="Filter by sync status")
@click.pass_obj
def sites(client, sync_status):
    """List registered sites"""
    params = {"sync_status": sync_status} if sync_status else {}
    result = client._make_request("GET", "/sites", params=params)

    if result is None:
        return
    if not result:
        click.echo("No sites registered")
        return

    headers = ["ID", "Name", "URL", "Plugin", "Status", "Found", "Synced", "Last Sync"]
    rows = [
        [
            site["id"],
            site["name"],
            site["base_url"],
            site["translation_plugin"],
            site["sync_status"],
            site["total_found"],
            site["total_synced"],
            site.get("last_sync_at") or "-",
        ]
        for site in result
    ]
    click.echo(tabulate(rows, headers=headers, tablefmt="grid"))


@cli.command()
@click.argument("name")
@click.argument("url")
@click.option("--username", "-u", required=True, help="WordPress username")
@click.pass_obj
def add(client, name, url, username):
    """Register a WordPress site"""
    result = client._make_request(
        "POST", "/sites", json={"name": name, "url": url, "username": username}
    )

    if result:
        click.echo("Site registered successfully!")
        click.echo(f"ID: {result['id']}")
        click.echo(f"URL: {result['base_url']}")


@cli.command()
@click.argument("site_id", type=int)
@click.option("--output", "-o", type=click.Choice(["json", "yaml"]), default="yaml")
@click.pass_obj
def describe(client, site_id, output):
    """Describe a site"""
    result = client._make_request("GET", f"/sites/{site_id}")

    if result:
        if output == "yaml":
            click.echo(yaml.dump(result, default_flow_style=False))
        else:
            click.echo(json.dumps(result, indent=2))


@cli.command()
@click.argument("site_id", type=int)
@click.confirmation_option(prompt="Are you sure you want to remove this site?")
@click.pass_obj
def remove(client, site_id):
    """Remove a site (synced articles are kept)"""
    result = client._make_request("DELETE", f"/sites/{site_id}")

    if result is not None:
        click.echo("Site removed")


@cli.command()
@click.argument("site_id", type=int)
@password_option
@click.pass_obj
def test(client, site_id, app_password):
    """Test the connection to a site"""
    result = client._make_request(
        "POST", f"/sites/{site_id}/test", json={"app_password": app_password}
    )

    if result:
        data = result["data"]
        click.echo(f"Connected to {data['url']} as {data['username']}")
        click.echo(f"Role: {data['user_role']}")


@cli.command()
@click.argument("site_id", type=int)
@password_option
@click.pass_obj
def detect(client, site_id, app_password):
    """Detect the translation plugin of a site"""
    result = client._make_request(
        "POST", f"/sites/{site_id}/detect-plugin", json={"app_password": app_password}
    )

    if result:
        data = result["data"]
        click.echo(f"Plugin: {data['plugin']}")
        click.echo(f"Version: {data['version'] or 'unknown'}")
        languages = ", ".join(data["supported_languages"]) or "-"
        click.echo(f"Languages: {languages}")


@cli.command()
@click.argument("site_id", type=int)
@click.option(
    "--mode",
    "-m",
    type=click.Choice(["incremental", "full"]),
    default="incremental",
    help="full overwrites previously synced posts",
)
@click.option(
    "--language",
    "-l",
    "languages",
    multiple=True,
    help="Language to sync (repeatable; default: detected languages)",
)
@password_option
@click.pass_obj
def sync(client, site_id, mode, languages, app_password):
    """Sync posts from a site"""
    result = client._make_request(
        "POST",
        f"/sites/{site_id}/sync",
        json={
            "app_password": app_password,
            "mode": mode,
            "languages": list(languages),
        },
    )

    if result:
        data = result["data"]
        click.echo(data["message"])
        rows = [
            ["Status", data["status"]],
            ["Found", data["found"]],
            ["Synced", data["synced"]],
            ["Created", data["created"]],
            ["Updated", data["updated"]],
            ["Skipped", data["skipped"]],
            ["Errors", len(data["errors"])],
        ]
        click.echo(tabulate(rows, tablefmt="simple"))
        for error in data["errors"]:
            click.echo(f"  - {error}", err=True)


if __name__ == "__main__":
    cli()
