"""
Unit tests for the relevance filter and product inferencer.
"""

from regwatch.core.ingestion.relevance import (
    DEFAULT_FILTER,
    RelevanceFilter,
    infer_products,
    is_relevant,
    sorted_products,
)


class TestRelevanceFilter:
    """Test include/exclude keyword matching."""

    def test_include_keyword_accepts(self):
        assert is_relevant("Schedules of Controlled Substances: Placement of Marijuana in Schedule III")

    def test_description_is_considered(self):
        assert is_relevant("Notice of proposed rulemaking", "Addresses hemp-derived products")

    def test_no_include_keyword_rejects(self):
        assert not is_relevant("Airworthiness Directives; Boeing Airplanes")

    def test_exclude_wins_over_include(self):
        assert not is_relevant("Hemp fiber use in marine rope standards")
        assert not is_relevant("Cannabis cultivation on national forest land", "Endangered species review")

    def test_case_insensitive(self):
        assert is_relevant("FDA WARNS ABOUT KRATOM")

    def test_whole_word_matching(self):
        assert not is_relevant("Healthcare workforce grants")
        assert is_relevant("New limits on THC potency")

    def test_plural_form_matches(self):
        assert is_relevant("Standards for e-cigarettes sold online")

    def test_empty_and_none_inputs(self):
        assert not is_relevant(None)
        assert not is_relevant("", None)

    def test_extend_adds_keywords(self):
        custom = DEFAULT_FILTER.extend(include=["controlled substance"], exclude=["murder"])
        assert custom.matches("Controlled substance scheduling hearing")
        assert not custom.matches("Murder trial involving cannabis")
        assert DEFAULT_FILTER.matches("Murder trial involving cannabis")

    def test_custom_include_only_filter(self):
        kava = RelevanceFilter(include=("kava",))
        assert kava.matches("Kava bar licensing update")
        assert not kava.matches("Kratom advisory")

    def test_explain(self):
        assert DEFAULT_FILTER.explain("Hemp in marine rope") == "excluded by 'marine'"
        assert DEFAULT_FILTER.explain("Kratom advisory") == "included by 'kratom'"
        assert DEFAULT_FILTER.explain("Budget update") == "no include keyword"


class TestInferProducts:
    """Test product category inference."""

    def test_single_category(self):
        assert infer_products("Kratom import alert") == frozenset({"kratom"})

    def test_multiple_categories(self):
        products = infer_products("Hemp-derived delta-8 and CBD products", "vape cartridges")
        assert products == frozenset({"hemp", "delta-8", "nicotine"})

    def test_no_match(self):
        assert infer_products("Annual budget report") == frozenset()
        assert infer_products(None) == frozenset()

    def test_sorted_products(self):
        assert sorted_products("Marijuana and psilocybin reform") == ["cannabis", "psychedelics"]

    def test_deterministic(self):
        text = "Tobacco, kava and mushroom policy"
        assert infer_products(text) == infer_products(text)
