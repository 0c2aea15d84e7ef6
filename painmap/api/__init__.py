# painmap/api/__init__.py
