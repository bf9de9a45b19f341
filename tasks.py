# type: ignore
from invoke import task


@task
def venv(ctx):
    """Create a uv virtualenv with blueprobe and its dev tools."""
    ctx.run("uv venv")
    ctx.run("uv pip install -e '.[dev]'")


@task
def lint(ctx):
    """Run ruff and mypy over the package and tests."""
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run("mypy src", pty=True)


@task
def test(ctx):
    """Run the test suite with coverage."""
    ctx.run("pytest --cov=blueprobe --cov-report=term-missing", pty=True)


@task
def scan(ctx, duration=5):
    """Run a short discovery against the local adapter with debug logging."""
    ctx.run(f"LOGLEVEL=DEBUG blueprobe scan --duration {duration}", pty=True)


@task
def build(ctx):
    """Build the sdist and wheel."""
    ctx.run("rm -rf dist")
    ctx.run("uv build")
