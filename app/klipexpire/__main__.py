"""Allow running klipexpire with ``python -m klipexpire``."""

from klipexpire.cli.main import app

app()
