from pathlib import Path
from invoke import task, Context

root_path = Path(__file__).parent.absolute()


@task
def test(ctx: Context) -> None:
    # Run linters
    ctx.run("ruff check")
    ctx.run("mypy system_trust_exporter")

    # Run the test suite
    ctx.run("pytest")


@task
def lint(ctx: Context) -> None:
    ctx.run("ruff format .")
    ctx.run("ruff check . --fix")
    ctx.run("mypy .")


@task
def export(ctx: Context, platform: str = "", output_format: str = "pem") -> None:
    platform_arg = f" --platform {platform}" if platform else ""
    ctx.run(f"python {root_path / 'main.py'}{platform_arg} --format {output_format}")
