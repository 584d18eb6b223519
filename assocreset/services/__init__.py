# assocreset/services/__init__.py
