"""resumate package.

Turns free-form diary notes about work experiences into structured,
resume-ready Markdown + YAML records through a staged workflow
(draft -> refined -> archived).

Public entrypoint: `python -m resumate` or the `resumate` console script.
"""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "__version__",
]
