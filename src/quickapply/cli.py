"""quickapply command line."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from quickapply import __version__, config
from quickapply.answers import AnswerProvider, GenerationContext
from quickapply.dom import PlaywrightForm
from quickapply.errors import FatalConfig
from quickapply.jobs import JobList
from quickapply.llm import LLMClient, resolve_llm_config
from quickapply.pacing import jitter
from quickapply.results import JobResult, log_result, render_summary
from quickapply.runner import JobRunner
from quickapply.session import load_cookies, login_if_needed, open_browser, save_cookies

console = Console()

app = typer.Typer(
    name="quickapply",
    help="Submit quick-apply job applications, answering free-text questions with an LLM.",
    no_args_is_help=True,
)


def _bootstrap(verbose: bool = False) -> None:
    """Load .env files, create app dirs, and configure logging once."""
    config.load_env()
    config.ensure_dirs()

    level = logging.DEBUG if verbose else logging.INFO
    file_handler = logging.FileHandler(config.LOG_DIR / "quickapply.log", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False), file_handler],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _fatal(e: FatalConfig) -> None:
    console.print(f"[red bold]Configuration error:[/red bold] {e}")
    raise typer.Exit(code=2)


@app.command()
def run(
    url: Optional[str] = typer.Option(None, "--url", help="Job search URL (defaults to JOBS_URL)"),
    limit: int = typer.Option(0, "--limit", "-n", help="Max quick-apply jobs to attempt (0 = all)"),
    max_steps: int = typer.Option(int(config.DEFAULTS["max_steps"]), "--max-steps", help="Step budget per wizard"),
    headless: Optional[bool] = typer.Option(None, "--headless/--headed", help="Override BROWSER_HEADLESS"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Drive wizards but never submit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Apply to every quick-apply job on the search page."""
    _bootstrap(verbose)

    # All configuration is validated before the browser starts.
    try:
        llm_cfg = resolve_llm_config()
        run_cfg = config.resolve_run_config(search_url=url)
        browser_cfg = config.resolve_browser_config()
        persona = config.load_persona()
    except FatalConfig as e:
        _fatal(e)
        return
    if headless is not None:
        browser_cfg = replace(browser_cfg, headless=headless)

    client = LLMClient(llm_cfg)
    provider = AnswerProvider(
        client,
        GenerationContext(int(config.DEFAULTS["context_size"]), seed=persona.system),
    )
    console.print(f"quickapply {__version__}: {run_cfg.search_url}")
    console.print(f"[dim]Model: {llm_cfg.model} | Max steps: {max_steps}" + (" | DRY RUN" if dry_run else "") + "[/dim]")

    results: list[JobResult] = []

    def _record(result: JobResult) -> None:
        results.append(result)
        log_result(result, config.RESULTS_PATH)

    try:
        with open_browser(browser_cfg) as context:
            load_cookies(context)
            page = context.new_page()
            jitter(int(config.DEFAULTS["jitter_min_ms"]), int(config.DEFAULTS["jitter_max_ms"]))
            login_if_needed(page, run_cfg)
            save_cookies(context)
            page.close()

            page = context.new_page()
            job_list = JobList(page, run_cfg.search_url)
            job_list.load()
            job_list.load_all()

            runner = JobRunner(
                PlaywrightForm(page, type_delay_ms=int(config.DEFAULTS["type_delay_ms"])),
                provider,
                max_steps=max_steps,
                dry_run=dry_run,
            )
            runner.run(job_list.jobs(), limit=limit, on_result=_record)
    except FatalConfig as e:
        _fatal(e)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
    finally:
        client.close()

    console.print(render_summary(results))
    console.print(f"Results: {config.RESULTS_PATH}")


@app.command()
def check() -> None:
    """Validate configuration without launching a browser."""
    _bootstrap()
    try:
        llm_cfg = resolve_llm_config()
        run_cfg = config.resolve_run_config()
        persona = config.load_persona()
    except FatalConfig as e:
        _fatal(e)
        return

    browser_cfg = config.resolve_browser_config()
    console.print(f"[green]OK[/green] LLM endpoint: {llm_cfg.base_url} ({llm_cfg.model})")
    console.print(f"[green]OK[/green] Search URL: {run_cfg.search_url}")
    console.print(
        f"[green]OK[/green] Browser: headless={browser_cfg.headless} "
        f"slow_mo={browser_cfg.slow_mo}ms timeout={browser_cfg.default_timeout}ms"
    )
    if not run_cfg.username or not run_cfg.password:
        console.print("[yellow]![/yellow] SITE_USERNAME/SITE_PASSWORD not set; a saved session is required.")
    console.print(f"Persona messages: {len(persona.system)}")


if __name__ == "__main__":
    app()
