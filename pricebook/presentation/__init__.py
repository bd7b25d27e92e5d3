# pricebook/presentation/__init__.py

"""
Слой presentation: HTTP-роуты и usecase-фасады движка цен.
"""

__all__ = [
    "http",
    "usecases",
]
