"""
Commitgate: local pre-commit hook orchestration

Provides:
- Declarative hook configuration (.pre-commit-config.yaml)
- Changed-file tracking between successful runs
- Parallel hook execution with deterministic reporting
- A git pre-commit gate that blocks on failures and rewritten files
"""

__version__ = "0.1.0"
