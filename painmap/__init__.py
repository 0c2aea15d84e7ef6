# painmap/__init__.py
