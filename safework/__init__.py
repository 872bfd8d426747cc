"""SafeWork: Task Risk Assessment approval and LMRA completion core."""

__version__ = "0.1.0"
