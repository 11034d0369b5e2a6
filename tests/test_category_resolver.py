from finance_ingest.core.category_resolver import (
    INVESTMENT, SMS_RULES, STATEMENT_RULES, TRANSFER, CategoryResolver, ResolutionContext,
    contains_phrase,
)
from finance_ingest.core.categories import CATEGORY_KEYWORDS
from finance_ingest.core.models import Category


def _ctx(text, pool=(), is_income=False):
    return ResolutionContext(text=text, pool=tuple(pool), is_income=is_income, keywords=CATEGORY_KEYWORDS)


def test_contains_phrase_is_whole_word():
    assert contains_phrase("paid to vi prepaid", "vi")
    assert not contains_phrase("sent via upi", "vi")
    assert not contains_phrase("current account", "rent")
    assert contains_phrase("bought at h&m store", "h&m")


def test_keyword_creates_missing_category(pool):
    resolver = CategoryResolver()
    resolution = resolver.resolve("AMAZON", "rs.450 debited to amazon", pool, is_income=False)

    assert resolution.category.label == 'Shopping'
    assert resolution.category.emoji == '🛍️'
    assert resolution.created == (resolution.category,)
    assert resolution.matched_keyword == 'amazon'
    assert resolution.rule == 'keyword_table'


def test_keyword_reuses_pool_category(pool):
    resolution = CategoryResolver().resolve("SWIGGY", "paid to swiggy", pool, is_income=False)

    food = next(c for c in pool if c.label == 'Food')
    assert resolution.category is food
    assert resolution.created == ()


def test_income_vocabulary_gives_paycheck(pool):
    resolution = CategoryResolver().resolve("ACME CORP", "salary credited by acme corp", pool, is_income=True)

    assert resolution.category.label == 'Paycheck'
    assert resolution.rule == 'income_defaults'


def test_income_without_vocabulary_uses_allowance(pool):
    resolution = CategoryResolver().resolve("Mom", "rs 500 received from mom", pool, is_income=True)
    assert resolution.category.label == 'Allowance'


def test_income_without_allowance_is_general():
    resolution = CategoryResolver().resolve("Mom", "rs 500 received from mom", [], is_income=True)
    assert resolution.category.label == 'General'
    assert resolution.is_general


def test_investment_vocabulary(pool):
    resolution = CategoryResolver().resolve("HDFC MUTUAL", "paid to hdfc mutual", pool, is_income=False)
    assert resolution.category.label == 'Investments'
    assert resolution.rule == 'investment'


def test_pool_label_matches_custom_category(pool):
    daycare = Category('c1', 'Daycare', '🧸', '#000000', is_custom=True)
    resolution = CategoryResolver().resolve(
        "Little Stars Daycare", "paid to little stars daycare", pool + [daycare], is_income=False
    )
    assert resolution.category is daycare
    assert resolution.rule == 'pool_label'


def test_transfer_vocabulary_is_general(pool):
    resolution = CategoryResolver().resolve("Rahul Kumar", "neft to rahul kumar", pool, is_income=False)
    assert resolution.category.label == 'General'
    assert resolution.rule == 'transfer'


def test_no_rule_falls_back_to_general(pool):
    resolver = CategoryResolver()
    resolution = resolver.resolve("Xyzzy", "service charge xyzzy", pool, is_income=False)

    assert resolution.category.label == 'General'
    assert resolution.category.emoji == '🧾'
    assert resolution.rule == 'fallback'
    assert resolver.stats == {'fallback': 1}


def test_rule_order_differs_between_sources(pool):
    text = "refund from amazon"
    sms = CategoryResolver(rules=SMS_RULES).resolve("Amazon", text, pool, is_income=True)
    statement = CategoryResolver(rules=STATEMENT_RULES).resolve("Amazon", text, pool, is_income=True)

    assert sms.category.label == 'Shopping'
    assert statement.category.label == 'Paycheck'


def test_rules_apply_independently(pool):
    hit = INVESTMENT.apply(_ctx("sip to groww", pool))
    assert hit.label == 'Investments'
    assert TRANSFER.apply(_ctx("coffee at cafe", pool)) is None


def test_custom_keyword_table(pool):
    resolver = CategoryResolver(keywords={'Pets': ['supertails']})
    resolution = resolver.resolve("SUPERTAILS", "paid to supertails", pool, is_income=False)
    assert resolution.category.label == 'Pets'


def test_sms_keywords_match_inside_handles(pool):
    resolution = CategoryResolver(rules=SMS_RULES).resolve(
        "AMAZONPAY", "rs.450.00 debited from a/c xx1234 to amazonpay", pool, is_income=False
    )
    assert resolution.category.label == 'Shopping'
    assert resolution.matched_keyword == 'amazon'


def test_short_sms_keywords_need_word_boundaries(pool):
    resolution = CategoryResolver(rules=SMS_RULES).resolve("Barber Shop", "paid via card", pool, is_income=False)
    assert resolution.category.label == 'General'


def test_statement_keywords_are_whole_words(pool):
    resolution = CategoryResolver(rules=STATEMENT_RULES).resolve(
        "Amazonpay Wallet", "amazonpay wallet", pool, is_income=False
    )
    assert resolution.category.label == 'General'
    assert resolution.rule == 'fallback'
