# carmarket/services/__init__.py
# Moderation services: pure policy, engine, report bridge and role management.
