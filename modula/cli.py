"""
Modula CLI: register, log in, and publish or fetch modules.

Usage:
    modula register
    modula login
    modula logout
    modula status
    modula list
    modula view <id>
    modula download <id>
    modula upload <localPath>
    modula delete <id>
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich import box
from rich.align import Align
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.status import Status
from rich.table import Table

from . import __version__
from .client import ModulaAPIClient
from .config import Config, ConfigStore, get_api_url
from .console import configure_logging, console
from .errors import NotAuthenticatedError, TreeError
from .tree import materialize, serialize_directory, validate_name

logger = logging.getLogger(__name__)


TOOL_CHOICES = ["angular", "nestjs", "other"]


def format_error(error: Any) -> str:
    """Render a backend error payload (or transport message) for the console."""
    if isinstance(error, (dict, list)):
        return json.dumps(error, indent=2, ensure_ascii=False)
    return str(error)


def publisher_label(module: Dict[str, Any]) -> str:
    publisher = module.get('publisher')
    if publisher is None:
        publisher = module.get('publisherId')
    if isinstance(publisher, dict):
        publisher = publisher.get('nickname') or publisher.get('name') or publisher.get('_id') or publisher.get('id')
    return str(publisher) if publisher else "-"


class Prompter:
    """Interactive input through rich prompts."""
    def __init__(self, console: Console):
        self.console = console

    def ask(self, message: str, password: bool = False) -> str:
        return Prompt.ask(f"[primary]{message}[/]", password=password, console=self.console)

    def choose(self, message: str, choices: List[str], default: str) -> str:
        return Prompt.ask(f"[primary]{message}[/]", choices=choices, default=default, console=self.console)

    def confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(f"[warning]{message}[/]", default=default, console=self.console)


class ModulaCLI:
    """Runs one command per invocation against the API client and local config.

    Every command method returns True on success and False when a failure was
    reported to the console.
    """
    def __init__(self, client: ModulaAPIClient, store: Any, config: Config,
                 prompter: Optional[Prompter] = None, console: Console = console,
                 cwd: Optional[Path] = None):
        self.client = client
        self.store = store
        self.config = config
        self.console = console
        self.prompter = prompter or Prompter(console)
        self.cwd = Path(cwd) if cwd is not None else None


    def _spinner(self, message: str) -> Status:
        return Status(f"[info]{message}[/]", console=self.console, spinner="dots12")


    def _require_token(self) -> None:
        """Attach the stored token to the client, or exit before any request is made."""
        try:
            self.config.auth_header()
        except NotAuthenticatedError as e:
            self.console.print(f"[danger]✗ {escape(str(e))}[/danger]")
            sys.exit(1)
        self.client.token = self.config.token


    def _success(self, title: str, body: Any) -> None:
        self.console.print(Panel(
            body,
            title=f"[success]✓ {title}[/]",
            border_style="bright_green",
            box=box.ROUNDED,
            padding=(0, 1)
        ))


    def _failure(self, action: str, error: Any) -> bool:
        self.console.print(Panel(
            f"[danger]✗ {action} failed[/]\n[subtle]{escape(format_error(error))}[/]",
            title_align="left",
            border_style="bright_red",
            box=box.ROUNDED,
            padding=(0, 1)
        ))
        return False


    def _cancelled(self, action: str) -> bool:
        self.console.print(f"\n[warning]⚠  {action} cancelled.[/warning]")
        return False


    def register(self) -> bool:
        """Prompts for account details and registers a new user."""
        try:
            name = self.prompter.ask("Name")
            nickname = self.prompter.ask("Nickname")
            email = self.prompter.ask("Email")
            password = self.prompter.ask("Password", password=True)
        except (KeyboardInterrupt, EOFError):
            return self._cancelled("Registration")

        with self._spinner("Registering..."):
            result = self.client.register(name, nickname, email, password)
        if not result['success']:
            return self._failure("Registration", result['error'])
        self._success("Registration Successful", escape(format_error(result['data'])))
        return True


    def login(self) -> bool:
        """Handles the login workflow and stores the returned token."""
        try:
            email = self.prompter.ask("Email")
            password = self.prompter.ask("Password", password=True)
        except (KeyboardInterrupt, EOFError):
            return self._cancelled("Login")
        if not email or not password:
            self.console.print("[danger]✗ Email and password cannot be empty.[/danger]")
            return False

        with self._spinner("Authenticating..."):
            result = self.client.login(email, password)
        if not result['success']:
            return self._failure("Login", result['error'])

        self.config.token = result['token']
        self.store.save(self.config)
        self._success("Login Successful", Align.center("[accent]Token stored.[/]"))
        return True


    def logout(self) -> bool:
        """Removes the stored token; the backend is not contacted."""
        self.config.token = None
        self.store.save(self.config)
        self._success("Logged Out", Align.center("[accent]Token removed.[/]"))
        return True


    def status(self) -> bool:
        """Displays the API URL, config location, and whether a token is stored."""
        config_path = self.store.path if self.store.path is not None else "(in memory)"
        if self.config.is_authenticated:
            status_content = f"[accent]Auth:[/] [success]✓ Token stored[/]\n[accent]API:[/] [info]{self.client.base_url}[/]\n[accent]Config:[/] [info]{config_path}[/]"
            border = "bright_green"
            title = "[success]📊 Status[/]"
        else:
            status_content = f"[accent]Auth:[/] [danger]✗ Not logged in[/]\n[accent]API:[/] [info]{self.client.base_url}[/]\n[accent]Config:[/] [info]{config_path}[/]\n[subtle]Use 'modula login' to authenticate.[/]"
            border = "bright_red"
            title = "[danger]📊 Status[/]"
        self.console.print(Panel(status_content, title=title, border_style=border, box=box.ROUNDED, padding=(0, 1)))
        return True


    def list_modules(self) -> bool:
        """Fetches and displays the registered modules."""
        self._require_token()
        with self._spinner("Fetching modules..."):
            result = self.client.list_modules()
        if not result['success']:
            return self._failure("Listing modules", result['error'])

        items = result['data'] if isinstance(result['data'], list) else []
        modules = [item for item in items if isinstance(item, dict)]
        if len(modules) != len(items):
            logger.warning("Skipped %d malformed module entries", len(items) - len(modules))
        if not modules:
            self.console.print(Panel(
                "[warning]⚠  No modules registered.[/]",
                border_style="bright_yellow",
                box=box.ROUNDED,
                padding=(0, 1)
            ))
            return True

        table = Table(
            title="[secondary]📦 Registered Modules[/]",
            box=box.ROUNDED,
            show_header=True,
            header_style="accent",
            border_style="bright_blue",
            padding=(0, 1)
        )
        table.add_column("ID", style="subtle", no_wrap=True)
        table.add_column("Name", style="primary")
        table.add_column("Description", style="accent")
        table.add_column("Tool", style="info", justify="center")
        table.add_column("Publisher", style="secondary")
        for mod in modules:
            table.add_row(
                escape(str(mod.get('_id') or mod.get('id') or "-")),
                escape(str(mod.get('name') or "")),
                escape(str(mod.get('description') or "")),
                escape(str(mod.get('tool') or "")),
                escape(publisher_label(mod)),
            )
        self.console.print(table)
        self.console.print(f"[accent]Total modules:[/] [secondary]{len(modules)}[/]")
        return True


    def view_module(self, module_id: str) -> bool:
        """Prints the full module record as JSON."""
        self._require_token()
        with self._spinner(f"Fetching module {escape(module_id)}..."):
            result = self.client.view_module(module_id)
        if not result['success']:
            return self._failure("Viewing module", result['error'])
        self.console.print("[secondary]Module details:[/]")
        self.console.print_json(data=result['data'])
        return True


    def download_module(self, module_id: str) -> bool:
        """Downloads a module's tree and builds it under <cwd>/<module name>."""
        self._require_token()
        with self._spinner(f"Downloading module {escape(module_id)}..."):
            result = self.client.download_module(module_id)
        if not result['success']:
            return self._failure("Download", result['error'])

        data = result['data'] if isinstance(result['data'], dict) else {}
        base = self.cwd if self.cwd is not None else Path.cwd()
        try:
            build_path = base / validate_name(data.get('name'))
            written = materialize(data.get('content') or [], build_path)
        except (TreeError, OSError) as e:
            logger.debug("Materializing module %s failed", module_id, exc_info=True)
            return self._failure("Download", str(e))

        self._success(
            "Module Downloaded",
            f"[accent]Built in:[/] [info]{escape(str(build_path))}[/] • [accent]Files:[/] [secondary]{written}[/]"
        )
        return True


    def upload_module(self, local_path: str) -> bool:
        """Captures a local directory and sends it as a new module."""
        self._require_token()
        path = Path(local_path)
        if not path.exists():
            self.console.print(f"[danger]✗ Local path does not exist: {escape(local_path)}[/danger]")
            return False
        if not path.is_dir():
            self.console.print(f"[danger]✗ Local path is not a directory: {escape(local_path)}[/danger]")
            return False

        try:
            name = self.prompter.ask("Module name")
            description = self.prompter.ask("Description")
            tool = self.prompter.choose("Tool", TOOL_CHOICES, default="other")
        except (KeyboardInterrupt, EOFError):
            return self._cancelled("Upload")

        try:
            tree = serialize_directory(path)
        except (OSError, TreeError) as e:
            logger.debug("Serializing %s failed", path, exc_info=True)
            return self._failure("Reading local directory", str(e))
        nodes = [child.to_dict() for child in tree.children]

        with self._spinner(f"Uploading {len(nodes)} top-level entries..."):
            result = self.client.upload_module(name, description, local_path, tool, nodes)
        if not result['success']:
            return self._failure("Upload", result['error'])
        self._success("Module Uploaded", escape(format_error(result['data'])))
        return True


    def delete_module(self, module_id: str) -> bool:
        """Deletes a module after confirmation."""
        self._require_token()
        try:
            sure = self.prompter.confirm(f"Are you sure you want to delete module {escape(module_id)}?", default=False)
        except (KeyboardInterrupt, EOFError):
            return self._cancelled("Deletion")
        if not sure:
            self.console.print("[info]Deletion cancelled.[/]")
            return True

        with self._spinner(f"Deleting module {escape(module_id)}..."):
            result = self.client.delete_module(module_id)
        if not result['success']:
            return self._failure("Deletion", result['error'])
        self._success("Module Deleted", f"[accent]Module[/] [secondary]{escape(module_id)}[/] [accent]deleted.[/]")
        return True


# --- Command line entry points ---
def _finish(ok: bool) -> None:
    if not ok:
        sys.exit(1)


@click.group()
@click.option("--api-url", default=None, help="Backend base URL (overrides MODULA_API_URL).")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(__version__, prog_name="modula")
@click.pass_context
def cli(ctx: click.Context, api_url: Optional[str], verbose: bool) -> None:
    """Modula - publish and fetch directory-tree modules."""
    configure_logging(verbose)
    if isinstance(ctx.obj, ModulaCLI):
        return
    store = ConfigStore()
    config = store.load()
    ctx.obj = ModulaCLI(ModulaAPIClient(api_url or get_api_url()), store, config)


@cli.command()
@click.pass_obj
def register(app: ModulaCLI) -> None:
    """Register a new user."""
    _finish(app.register())


@cli.command()
@click.pass_obj
def login(app: ModulaCLI) -> None:
    """Log in and store the token."""
    _finish(app.login())


@cli.command()
@click.pass_obj
def logout(app: ModulaCLI) -> None:
    """Remove the stored token."""
    _finish(app.logout())


@cli.command()
@click.pass_obj
def status(app: ModulaCLI) -> None:
    """Show the API URL and login state."""
    _finish(app.status())


@cli.command("list")
@click.pass_obj
def list_command(app: ModulaCLI) -> None:
    """List all registered modules."""
    _finish(app.list_modules())


@cli.command()
@click.argument("module_id", metavar="ID")
@click.pass_obj
def view(app: ModulaCLI, module_id: str) -> None:
    """Show details of a module."""
    _finish(app.view_module(module_id))


@cli.command()
@click.argument("module_id", metavar="ID")
@click.pass_obj
def download(app: ModulaCLI, module_id: str) -> None:
    """Download a module and build it in the current directory."""
    _finish(app.download_module(module_id))


@cli.command()
@click.argument("local_path", metavar="LOCALPATH")
@click.pass_obj
def upload(app: ModulaCLI, local_path: str) -> None:
    """Capture a local directory and upload it as a new module."""
    _finish(app.upload_module(local_path))


@cli.command()
@click.argument("module_id", metavar="ID")
@click.pass_obj
def delete(app: ModulaCLI, module_id: str) -> None:
    """Delete a module."""
    _finish(app.delete_module(module_id))


def main():
    """Application entry point."""
    try:
        cli(prog_name="modula")
    except Exception as e:
        console.print(f"[danger]✗ A fatal, unhandled error occurred: {escape(str(e))}[/]")
        sys.exit(1)


if __name__ == "__main__":
    main()
