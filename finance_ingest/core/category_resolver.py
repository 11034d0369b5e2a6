"""
Category Resolver

Resolves free transaction text to a category using an ordered list of rules:
- Keyword table (merchant brands, domain words)
- Direction-specific income defaults
- Investment vocabulary
- Labels already in the user's category pool
- Transfer/UPI vocabulary (generic bucket)

The first rule whose predicate fires wins. Labels with no pool entry are
synthesized and reported in the resolution's `created` tuple; callers fold
them into their pool.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .categories import CATEGORY_KEYWORDS, RECEIPT_STYLE, Style, find_in_pool, find_or_create
from .models import GENERAL_LABEL, Category

INCOME_VOCABULARY = re.compile(r'\b(salary|credit|interest|refund|reward)\b')
INVESTMENT_VOCABULARY = re.compile(r'\b(zerodha|groww|mutual|fund|stock|equity|sip|investment)\b')
TRANSFER_VOCABULARY = re.compile(r'\b(neft|imps|rtgs|transfer|upi|paytm|gpay|phonepe|bharatpe)\b')

SHORT_KEYWORD_LENGTH = 3


@lru_cache(maxsize=1024)
def _word_pattern(phrase: str) -> re.Pattern:
    # Keywords like "cult.fit" or "h&m" are not plain \w runs
    return re.compile(r'(?<![a-z0-9])' + re.escape(phrase.lower()) + r'(?![a-z0-9])')


def contains_phrase(text: str, phrase: str) -> bool:
    """Whole-word, case-insensitive containment"""
    phrase = phrase.strip()
    if not phrase:
        return False
    return _word_pattern(phrase).search(text.lower()) is not None


def contains_keyword(text: str, keyword: str) -> bool:
    """
    Substring containment, whole-word for short keywords

    Brands glued to handles ("amazonpay", "swiggyupi") still match; keywords
    of SHORT_KEYWORD_LENGTH chars or fewer ("vi", "bar", "ola") only match as
    words since they turn up inside ordinary ones ("via", "barber").
    """
    keyword = keyword.strip().lower()
    if not keyword:
        return False
    if len(keyword) <= SHORT_KEYWORD_LENGTH:
        return contains_phrase(text, keyword)
    return keyword in text.lower()


@dataclass(frozen=True)
class ResolutionContext:
    """Everything a rule may look at"""
    text: str  # lowercased merchant + context
    pool: Tuple[Category, ...]
    is_income: bool
    keywords: Dict[str, List[str]]


@dataclass(frozen=True)
class RuleHit:
    """What a rule resolved to"""
    label: str
    matched_keyword: Optional[str] = None
    category: Optional[Category] = None  # set when the rule matched a pool entry directly


@dataclass(frozen=True)
class Rule:
    name: str
    predicate: Callable[[ResolutionContext], bool]
    resolution: Callable[[ResolutionContext], RuleHit]

    def apply(self, ctx: ResolutionContext) -> Optional[RuleHit]:
        if self.predicate(ctx):
            return self.resolution(ctx)
        return None


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a category"""
    category: Category
    matched_keyword: Optional[str] = None
    created: Tuple[Category, ...] = ()
    rule: Optional[str] = None

    @property
    def is_general(self) -> bool:
        return self.category.matches(GENERAL_LABEL)


# --- Keyword table ---------------------------------------------------------

def find_keyword(ctx: ResolutionContext,
                 match: Callable[[str, str], bool] = contains_keyword) -> Optional[Tuple[str, str]]:
    """First (label, keyword) pair from the keyword table found in the text"""
    for label, keywords in ctx.keywords.items():
        for keyword in keywords:
            if match(ctx.text, keyword):
                return label, keyword
    return None


def _keyword_rule(name: str, match: Callable[[str, str], bool]) -> Rule:
    def resolution(ctx: ResolutionContext) -> RuleHit:
        label, keyword = find_keyword(ctx, match)
        return RuleHit(label=label, matched_keyword=keyword)

    return Rule(
        name=name,
        predicate=lambda ctx: find_keyword(ctx, match) is not None,
        resolution=resolution,
    )


# SMS text: substrings, so brands inside UPI handles still hit
KEYWORD_TABLE = _keyword_rule('keyword_table', contains_keyword)

# Statement descriptions: whole words only
KEYWORD_TABLE_WORDS = _keyword_rule('keyword_table_words', contains_phrase)


# --- Income defaults -------------------------------------------------------

def _income_hit(ctx: ResolutionContext) -> RuleHit:
    if INCOME_VOCABULARY.search(ctx.text):
        return RuleHit(label='Paycheck')
    allowance = find_in_pool(ctx.pool, 'Allowance')
    if allowance is not None:
        return RuleHit(label=allowance.label, category=allowance)
    return RuleHit(label=GENERAL_LABEL)


INCOME_DEFAULTS = Rule(
    name='income_defaults',
    predicate=lambda ctx: ctx.is_income,
    resolution=_income_hit,
)


# --- Investments -----------------------------------------------------------

INVESTMENT = Rule(
    name='investment',
    predicate=lambda ctx: INVESTMENT_VOCABULARY.search(ctx.text) is not None,
    resolution=lambda ctx: RuleHit(label='Investments'),
)


# --- Pool labels -----------------------------------------------------------

def find_pool_label(ctx: ResolutionContext) -> Optional[Category]:
    """First pool category whose label appears in the text"""
    for cat in ctx.pool:
        if contains_phrase(ctx.text, cat.label):
            return cat
    return None


def _pool_hit(ctx: ResolutionContext) -> RuleHit:
    cat = find_pool_label(ctx)
    return RuleHit(label=cat.label, category=cat)


POOL_LABEL = Rule(
    name='pool_label',
    predicate=lambda ctx: find_pool_label(ctx) is not None,
    resolution=_pool_hit,
)


# --- Transfers -------------------------------------------------------------

TRANSFER = Rule(
    name='transfer',
    predicate=lambda ctx: TRANSFER_VOCABULARY.search(ctx.text) is not None,
    resolution=lambda ctx: RuleHit(label=GENERAL_LABEL),
)


# SMS ordering: brand keywords first, income/investment shortcuts after
SMS_RULES: Tuple[Rule, ...] = (KEYWORD_TABLE, INCOME_DEFAULTS, INVESTMENT, POOL_LABEL, TRANSFER)

# Statement ordering: investment/income shortcuts before the keyword table
STATEMENT_RULES: Tuple[Rule, ...] = (INVESTMENT, INCOME_DEFAULTS, KEYWORD_TABLE_WORDS, TRANSFER, POOL_LABEL)


class CategoryResolver:
    """
    Resolves text to a category using an ordered rule list
    """

    def __init__(self,
                 rules: Sequence[Rule] = SMS_RULES,
                 keywords: Optional[Dict[str, List[str]]] = None,
                 default_style: Style = RECEIPT_STYLE):
        """
        Args:
            rules: Rules evaluated in order, first hit wins
            keywords: Label -> keywords table (default: CATEGORY_KEYWORDS)
            default_style: Emoji/color for synthesized labels with no known style
        """
        self.rules = tuple(rules)
        self.keywords = keywords if keywords is not None else CATEGORY_KEYWORDS
        self.default_style = default_style
        self.stats: Dict[str, int] = {}

    def resolve(self,
                merchant_text: str,
                full_context: str,
                pool: Sequence[Category],
                is_income: bool) -> Resolution:
        """
        Resolve a category for a transaction

        Args:
            merchant_text: Extracted merchant / note
            full_context: Whole message or statement description
            pool: Existing categories (user's plus any created this run)
            is_income: Transaction direction

        Returns:
            Resolution; `created` holds a new category when one was synthesized
        """
        ctx = ResolutionContext(
            text=f"{merchant_text or ''} {full_context or ''}".lower(),
            pool=tuple(pool),
            is_income=is_income,
            keywords=self.keywords,
        )

        hit, rule_name = None, 'fallback'
        for rule in self.rules:
            hit = rule.apply(ctx)
            if hit is not None:
                rule_name = rule.name
                break

        if hit is None:
            hit = RuleHit(label=GENERAL_LABEL)

        self.stats[rule_name] = self.stats.get(rule_name, 0) + 1

        if hit.category is not None:
            return Resolution(hit.category, hit.matched_keyword, (), rule_name)

        category, created = find_or_create(ctx.pool, hit.label, is_income, self.default_style)
        return Resolution(
            category=category,
            matched_keyword=hit.matched_keyword,
            created=(category,) if created else (),
            rule=rule_name,
        )
