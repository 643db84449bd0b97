from .categories import VALID_CATEGORIES, normalize_category

__all__ = ['VALID_CATEGORIES', 'normalize_category']
