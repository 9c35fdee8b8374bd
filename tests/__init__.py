"""Test suite configuration and marker guidance.

Use ``pytest -m smoke`` for rapid feedback on imports.
Use ``pytest -m unit`` for the unit tests; BAM tests are skipped without pysam.
Use ``pytest`` to run everything.
"""
