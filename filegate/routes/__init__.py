from importlib import import_module

modules = [
    'auth',
    'files',
    'access_requests',
    'notifications',
    'search',
    'settings',
]

for m in modules:
    import_module(f'.{m}', __name__)

__all__ = modules
