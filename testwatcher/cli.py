import os

import click
from rich.console import Console
from rich.table import Table

from testwatcher import config
from testwatcher import logger as tw_logger
from testwatcher.classifier import classifier_from_config
from testwatcher.runner import runner_from_config
from testwatcher.watcher import Watcher, WatcherError, build_watch_rule


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to configuration TOML file.")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx, config_path, debug):
    """
    TestWatcher CLI: re-run tests when source files change.
    """
    try:
        cfg = config.load_config(config_path)
        if debug:
            cfg.setdefault("logging", {})["level"] = "DEBUG"
    except Exception as e:
        click.echo(f"Error loading configuration: {e}")
        ctx.abort()
    ctx.obj = {"config": cfg, "config_path": config_path, "debug": debug}


def get_logger(cfg):
    log_cfg = cfg.get("logging", {})
    log_dir = log_cfg.get("log_dir")
    if log_dir:
        log_dir = config.resolve_path(cfg, log_dir)
    return tw_logger.setup_logger(
        "testwatcher",
        level=log_cfg.get("level", "INFO"),
        log_dir=log_dir,
    )


def get_root(cfg, root):
    if root:
        return os.path.abspath(root)
    return os.path.abspath(config.resolve_path(cfg, cfg.get("watch", {}).get("root", ".")))


def build_runner(cfg, root, log):
    return runner_from_config(cfg, classifier_from_config(cfg), cwd=root, logger=log)


def build_rules(cfg):
    rule_list = []
    for spec in config.get_watch_rule_specs(cfg):
        if not isinstance(spec, dict) or "pattern" not in spec or "directory" not in spec:
            raise ValueError(f"Watch rule needs both 'pattern' and 'directory': {spec!r}")
        rule_list.append(build_watch_rule(spec["pattern"], spec["directory"]))
    return rule_list


@main.command()
@click.pass_context
def show_config(ctx):
    """
    Show the loaded configuration.
    """
    cfg = ctx.obj.get("config")
    click.echo(cfg)


@main.command()
@click.pass_context
def rules(ctx):
    """
    Show the watch rules and the output line rules.
    """
    cfg = ctx.obj.get("config")
    console = Console()
    try:
        rule_list = build_rules(cfg)
        classifier = classifier_from_config(cfg)
    except Exception as e:
        click.echo(f"Error loading configuration: {e}")
        ctx.exit(1)

    watch_table = Table(title="Watch Rules")
    watch_table.add_column("Pattern", style="cyan")
    watch_table.add_column("Directory", style="magenta")
    for rule in rule_list:
        watch_table.add_row(rule.pattern.pattern, rule.directory)
    console.print(watch_table)

    line_table = Table(title="Line Rules")
    line_table.add_column("Pattern", style="cyan")
    line_table.add_column("Category", style="magenta")
    for rule in classifier.rules:
        line_table.add_row(rule.pattern.pattern, rule.category)
    line_table.add_row("(anything else)", classifier.default)
    console.print(line_table)


@main.command()
@click.option("--root", default=None, help="Project root to run the tests from.")
@click.pass_context
def run_once(ctx, root):
    """
    Run the test command once and print the colorized output.
    """
    cfg = ctx.obj.get("config")
    log = get_logger(cfg)
    try:
        runner = build_runner(cfg, get_root(cfg, root), log)
    except ValueError as e:
        click.echo(f"Error loading configuration: {e}")
        ctx.exit(1)
    runner.run()


@main.command()
@click.option("--root", default=None, help="Project root to watch.")
@click.pass_context
def start(ctx, root):
    """
    Watch the project and re-run the tests on every change.
    """
    cfg = ctx.obj.get("config")
    log = get_logger(cfg)
    project_root = get_root(cfg, root)
    try:
        rule_list = build_rules(cfg)
        runner = build_runner(cfg, project_root, log)
    except Exception as e:
        click.echo(f"Error loading configuration: {e}")
        ctx.exit(1)

    watcher = Watcher(
        rule_list,
        runner,
        root=project_root,
        poll_interval=cfg.get("watch", {}).get("poll_interval", 0.5),
        logger=log,
    )
    try:
        watcher.start()
    except WatcherError as e:
        click.echo(f"Error starting watcher: {e}")
        ctx.exit(1)

    click.echo("Watching for changes... Press Ctrl+C to exit.")
    try:
        watcher.run()
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()


if __name__ == "__main__":
    main()
