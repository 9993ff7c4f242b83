from importlib import import_module

modules = [
    'donors',
    'bottles',
    'batches',
    'consumption',
    'reports',
]

for m in modules:
    import_module(f'.{m}', __name__)

__all__ = modules
