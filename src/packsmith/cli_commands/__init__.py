"""Click commands grouped by concern; registered on the ``packsmith`` group in ``cli.py``."""
