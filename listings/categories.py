"""Static listing categories."""

CATEGORIES = [
    {'id': 'electronics', 'name': 'Electronics', 'icon': '📱'},
    {'id': 'fashion', 'name': 'Fashion & Clothing', 'icon': '👕'},
    {'id': 'home', 'name': 'Home & Garden', 'icon': '🏠'},
    {'id': 'vehicles', 'name': 'Vehicles', 'icon': '🚗'},
    {'id': 'property', 'name': 'Property', 'icon': '🏢'},
    {'id': 'services', 'name': 'Services', 'icon': '🔧'},
    {'id': 'food', 'name': 'Food & Beverages', 'icon': '🍔'},
    {'id': 'sports', 'name': 'Sports & Outdoors', 'icon': '⚽'},
    {'id': 'books', 'name': 'Books & Media', 'icon': '📚'},
    {'id': 'beauty', 'name': 'Beauty & Health', 'icon': '💄'},
    {'id': 'toys', 'name': 'Toys & Games', 'icon': '🎮'},
    {'id': 'other', 'name': 'Other', 'icon': '📦'},
]

CATEGORY_IDS = frozenset(category['id'] for category in CATEGORIES)
