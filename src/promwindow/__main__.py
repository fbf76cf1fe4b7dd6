"""Entry point for `python -m promwindow`."""

from .cli import main

main()
