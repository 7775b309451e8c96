"""Allow running the operator as ``python -m converge``."""

from .main import run_main

run_main()
