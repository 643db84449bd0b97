"""Category constants shared by task creation and browsing.

Must stay in sync with the CATEGORIES list shipped in the mobile client.
"""

# The closed set of task categories
VALID_CATEGORIES = {
    'cleaning',
    'moving',
    'handyman',
    'groceries',
    'other',
}


def normalize_category(category):
    """Map client input (any case, surrounding whitespace) to a valid category key.

    Returns None when the value is not part of the closed set.
    """
    if not isinstance(category, str):
        return None
    key = category.strip().lower()
    if key in VALID_CATEGORIES:
        return key
    return None
