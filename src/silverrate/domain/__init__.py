"""
Domain Layer

Pure business logic: models, price derivation, analytics, the item
calculator, SGE market hours and price drivers. No I/O.
"""
