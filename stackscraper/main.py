import json
import logging
from pathlib import Path
from typing import List, Optional
import typer
from rich.console import Console
from rich.json import JSON
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from .config import ScraperSettings
from .core import AutoScraper
from .errors import ScraperError
from .models import GroupBy


app = typer.Typer(help="Learn scraping rules from example values and replay them on similar pages")
console = Console()


def _setup_logging(settings: ScraperSettings, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _make_scraper(verbose: bool) -> AutoScraper:
    try:
        settings = ScraperSettings.from_env()
    except ScraperError as e:
        _fail(e)
    _setup_logging(settings, verbose)
    return AutoScraper(settings=settings)


def _read_html(html_file: Optional[Path]) -> Optional[str]:
    if html_file is None:
        return None
    return html_file.read_text(encoding="utf-8")


def _fail(error: Exception) -> None:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise typer.Exit(1)


@app.command()
def build(
    url: str = typer.Argument(..., help="Page the examples come from"),
    wanted: List[str] = typer.Argument(..., help="Example values to learn rules for"),
    rules: Path = typer.Option(Path("rules.json"), "--rules", "-r", help="Rule file to write"),
    alias: str = typer.Option("", "--alias", "-a", help="Label for the learned rules"),
    html_file: Optional[Path] = typer.Option(None, "--html-file", help="Use saved markup instead of fetching URL"),
    update: bool = typer.Option(False, "--update", "-u", help="Append to the rules already in the file"),
    fuzz: float = typer.Option(1.0, "--fuzz", min=0.0, max=1.0, help="Text similarity ratio (1.0 = exact)"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Learn rules from example values and save them."""
    scraper = _make_scraper(verbose)
    try:
        if update and rules.exists():
            scraper.load(rules)
        result = scraper.build(
            url=url,
            wanted_dict={alias: wanted},
            html=_read_html(html_file),
            update=update,
            text_fuzz_ratio=fuzz,
        )
        scraper.save(rules)
    except (ScraperError, OSError) as e:
        _fail(e)

    console.print(f"[green]Learned {len(scraper.stack_list)} rules, saved to {rules}[/green]")
    console.print("\n[cyan]Extracted:[/cyan]")
    for entry in result:
        console.print(f"  - {escape(str(entry))}")
    console.print("\n[cyan]CSS selector:[/cyan]")
    console.print(f"  {escape(scraper.get_css_selector())}")


@app.command()
def extract(
    url: str = typer.Argument(..., help="Page to scrape"),
    rules: Path = typer.Option(..., "--rules", "-r", help="Rule file to use"),
    html_file: Optional[Path] = typer.Option(None, "--html-file", help="Use saved markup instead of fetching URL"),
    group_by: GroupBy = typer.Option(GroupBy.NONE, "--group-by", "-g", help="Bucket results by rule id or alias"),
    exact: bool = typer.Option(False, "--exact", help="Use index-based matching"),
    keep_order: bool = typer.Option(False, "--keep-order", help="Keep document order"),
    keep_blank: bool = typer.Option(False, "--keep-blank", help="Keep empty values"),
    fuzz: float = typer.Option(1.0, "--fuzz", min=0.0, max=1.0, help="Attribute similarity ratio (1.0 = exact)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output JSON file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Extract values from a page with saved rules."""
    scraper = _make_scraper(verbose)
    try:
        scraper.load(rules)
        html = _read_html(html_file)
        if exact:
            result = scraper.get_result_exact(
                url=url, html=html, group_by=group_by, attr_fuzz_ratio=fuzz, keep_blank=keep_blank
            )
        else:
            result = scraper.get_result_similar(
                url=url,
                html=html,
                group_by=group_by,
                attr_fuzz_ratio=fuzz,
                keep_blank=keep_blank,
                keep_order=keep_order,
            )
    except (ScraperError, OSError) as e:
        _fail(e)

    if output:
        with open(output, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2)
        console.print(f"[green]Saved to {output}[/green]")
    else:
        console.print(JSON(json.dumps(result)))


@app.command()
def selector(
    rules: Path = typer.Option(..., "--rules", "-r", help="Rule file to read"),
):
    """Print the CSS selector equivalent of a rule file."""
    scraper = _make_scraper(False)
    try:
        scraper.load(rules)
    except ScraperError as e:
        _fail(e)
    console.print(scraper.get_css_selector(), markup=False, soft_wrap=True)


@app.command(name="rules")
def rules_command(
    rules: Path = typer.Option(..., "--rules", "-r", help="Rule file to edit"),
    remove: List[str] = typer.Option([], "--remove", help="Rule id to drop"),
    keep: List[str] = typer.Option([], "--keep", help="Rule id to keep; all others are dropped"),
    alias: List[str] = typer.Option([], "--alias", help="RULE_ID=ALIAS"),
):
    """List rules, or remove, keep and relabel them."""
    scraper = _make_scraper(False)
    try:
        scraper.load(rules)
        aliases = {}
        for item in alias:
            rule_id, sep, name = item.partition("=")
            if not sep:
                raise typer.BadParameter(f"expected RULE_ID=ALIAS, got {item!r}", param_hint="--alias")
            aliases[rule_id] = name
        changed = bool(remove or keep or aliases)
        if remove:
            scraper.remove_rules(remove)
        if keep:
            scraper.keep_rules(keep)
        if aliases:
            scraper.set_rule_aliases(aliases)
        if changed:
            scraper.save(rules)
    except ScraperError as e:
        _fail(e)

    table = Table("id", "alias", "extracts", "selector")
    for stack in scraper.stack_list:
        extracts = stack.wanted_attr or ("direct text" if stack.is_non_rec_text else "text")
        path = " > ".join(segment.tag for segment in stack.content)
        table.add_row(stack.stack_id, escape(stack.alias), extracts, path)
    console.print(table)


if __name__ == "__main__":
    app()
