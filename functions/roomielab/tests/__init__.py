import os

# Route tests run against the in-memory store and identity provider.
os.environ.setdefault("ROOMIELAB_USE_IN_MEMORY_BACKENDS", "true")
