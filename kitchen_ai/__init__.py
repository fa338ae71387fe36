# kitchen_ai/__init__.py
