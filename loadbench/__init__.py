"""loadbench: load generation and traffic shaping for HTTP service benchmarks."""

__version__ = "0.1.0"
