"""
Category Tables

Default category styles and the keyword vocabulary used for rule-based
categorization. These tables are configuration: callers may pass their own
keyword mapping to the resolver.
"""
from typing import Dict, List, Optional, Tuple

from .models import Category, new_category_id

# (emoji, color)
Style = Tuple[str, str]

DEFAULT_EXPENSE_CATEGORIES: List[Category] = [
    Category('1', 'Food', '🍔', '#3b82f6'),
    Category('2', 'Transport', '🚆', '#64748b'),
    Category('3', 'Rent', '🏠', '#f59e0b'),
    Category('4', 'Subscriptions', '🔄', '#0ea5e9'),
    Category('5', 'Groceries', '🛒', '#10b981'),
    Category('6', 'Family', '👥', '#8b5cf6'),
    Category('7', 'Utilities', '💡', '#eab308'),
    Category('8', 'Fashion', '👔', '#06b6d4'),
    Category('9', 'Healthcare', '🚑', '#ef4444'),
    Category('10', 'Pets', '🐕', '#a8a29e'),
    Category('11', 'Sneakers', '👟', '#6366f1'),
    Category('12', 'Gifts', '🎁', '#f43f5e'),
]

DEFAULT_INCOME_CATEGORIES: List[Category] = [
    Category('101', 'Paycheck', '💰', '#22c55e'),
    Category('102', 'Allowance', '🤑', '#f59e0b'),
    Category('103', 'Part-Time', '💼', '#8b5cf6'),
    Category('104', 'Investments', '📈', '#10b981'),
    Category('105', 'Gifts', '🧧', '#f43f5e'),
    Category('106', 'Tips', '🪙', '#a8a29e'),
]

# Brand styles for labels the keyword table can produce but no default covers
EXTRA_STYLES: Dict[str, Style] = {
    'Shopping': ('🛍️', '#ec4899'),
}

# Grey fallbacks for labels with no known style
RECEIPT_STYLE: Style = ('🧾', '#9ca3af')
FOLDER_STYLE: Style = ('📂', '#9ca3af')

# Canonical label -> lowercase keywords (brands, domain words). Order matters:
# the first label with a matching keyword wins.
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    'Food': [
        'swiggy', 'zomato', 'dominos', 'pizzahut', 'kfc', 'burger', 'subway',
        'starbucks', 'cafe', 'tea', 'coffee', 'restaurant', 'dining', 'bar',
        'pub', 'kitchen', 'baker', 'cake', 'mcdonalds', 'biryani', 'juice',
        'sweet', 'chaayos', 'third wave', 'blue tokai', 'eatclub',
    ],
    'Transport': [
        'uber', 'ola', 'rapido', 'petrol', 'fuel', 'shell', 'hpcl', 'bpcl',
        'iocl', 'metro', 'railway', 'irctc', 'flight', 'bus', 'fastag', 'toll',
        'parking', 'indigo', 'air india', 'vistara', 'auto', 'cab', 'yulu',
        'bounce',
    ],
    'Groceries': [
        'blinkit', 'zepto', 'instamart', 'bigbasket', 'dmart', 'reliance smart',
        'milk', 'dairy', 'vegetable', 'fruit', 'grocery', 'kirana',
        'supermarket', "nature's basket", 'spencer', 'more retail', 'luce',
    ],
    'Utilities': [
        'jio', 'airtel', 'vi', 'vodafone', 'bescom', 'electricity', 'power',
        'gas', 'water', 'bill', 'broadband', 'act fibernet', 'recharge', 'dth',
        'tatasky', 'dishtv', 'bsnl', 'mtnl', 'cylinder', 'indane', 'bharatgas',
    ],
    'Healthcare': [
        'apollo', 'pharmacy', 'medplus', 'hospital', 'clinic', 'doctor', 'lab',
        'scan', 'mri', 'health', 'medicine', '1mg', 'pharmeasy', 'practo',
        'cult.fit', 'gym', 'fitness',
    ],
    'Investments': [
        'zerodha', 'groww', 'upstox', 'sip', 'mutual fund', 'stock', 'equity',
        'nps', 'ppf', 'indmoney', 'smallcase', 'coin', 'kite', 'angel one',
    ],
    'Fashion': [
        'myntra', 'ajio', 'zudio', 'decathlon', 'fashion', 'cloth', 'zara',
        'h&m', 'trends', 'max', 'pantaloons', 'uniqlo', 'levi', 'nike',
        'adidas', 'puma', 'westside', 'lifestyle',
    ],
    'Subscriptions': [
        'netflix', 'prime', 'hotstar', 'spotify', 'youtube', 'apple',
        'subscription', 'sonyliv', 'zee5', 'hulu', 'chatgpt', 'midjourney',
        'claude', 'linkedin',
    ],
    'Shopping': [
        'amazon', 'flipkart', 'meesho', 'nykaa', 'tatacliq', 'mall', 'retail',
        'croma', 'reliance digital', 'vijay sales', 'apple store', 'samsung',
    ],
}


def category_style(label: str, is_income: bool = False,
                   default: Style = RECEIPT_STYLE) -> Style:
    """Look up the visual style for a label, direction's own table first"""
    tables = [DEFAULT_INCOME_CATEGORIES, DEFAULT_EXPENSE_CATEGORIES]
    if not is_income:
        tables.reverse()

    for table in tables:
        for cat in table:
            if cat.label == label:
                return cat.emoji, cat.color

    return EXTRA_STYLES.get(label, default)


def find_in_pool(pool, label: str) -> Optional[Category]:
    """Case-insensitive label lookup"""
    for cat in pool:
        if cat.matches(label):
            return cat
    return None


def create_category(label: str, is_income: bool = False,
                    default: Style = RECEIPT_STYLE) -> Category:
    """Synthesize a new, non-custom category styled from the default tables"""
    emoji, color = category_style(label, is_income, default)
    return Category(
        id=new_category_id(),
        label=label,
        emoji=emoji,
        color=color,
        is_custom=False,
    )


def find_or_create(pool, label: str, is_income: bool = False,
                   default: Style = RECEIPT_STYLE) -> Tuple[Category, bool]:
    """
    Returns:
        Tuple of (category, created) where created is True for a new category
    """
    existing = find_in_pool(pool, label)
    if existing is not None:
        return existing, False
    return create_category(label, is_income, default), True
