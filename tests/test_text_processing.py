"""
Unit tests for whitespace/HTML normalisation, truncation and keyword ranking
"""
from upcora.services.concepts import STOPWORDS, extract_concepts, generate_media_search_queries
from upcora.services.text_utils import collapse_whitespace, strip_html, truncate_for_budget, word_count


class TestNormalizer:
    def test_collapse_whitespace(self):
        assert collapse_whitespace("  one\t two\n\n\nthree  \r\n four ") == "one two three four"

    def test_collapse_empty(self):
        assert collapse_whitespace("") == ""
        assert collapse_whitespace(None) == ""

    def test_word_count_matches_split(self):
        text = "Cells divide, grow and  specialise."
        assert word_count(text) == len(text.split()) == 5

    def test_strip_html_drops_scripts_styles_and_tags(self):
        html = (
            "<html><head><style>body { color: red; }</style>"
            "<script>var secret = 1;</script></head>"
            "<body><h1>Cell&nbsp;Biology</h1>\n<p>Mitosis &amp; meiosis</p></body></html>"
        )
        text = strip_html(html)
        assert text == "Cell Biology Mitosis meiosis"
        assert "secret" not in text
        assert "color" not in text


class TestTruncation:
    def test_short_text_unchanged(self):
        text = "a" * 400
        assert truncate_for_budget(text, 100) == text

    def test_cuts_at_late_sentence_boundary(self):
        text = ("x" * 90) + "." + ("y" * 200)
        result = truncate_for_budget(text, 25)
        assert result == ("x" * 90) + "."

    def test_hard_cut_appends_ellipsis(self):
        text = "z" * 1000
        result = truncate_for_budget(text, 25)
        assert result == ("z" * 100) + "..."

    def test_length_bound(self):
        text = "The quick brown fox. " * 500
        for budget in (1, 10, 50, 300):
            assert len(truncate_for_budget(text, budget)) <= 4 * budget + 3


class TestConceptExtraction:
    def test_ranked_by_frequency(self):
        text = "neuron synapse neuron cortex neuron synapse"
        assert extract_concepts(text) == ["neuron", "synapse", "cortex"]

    def test_ties_keep_first_seen_order(self):
        assert extract_concepts("gamma delta alpha") == ["gamma", "delta", "alpha"]

    def test_filters_short_words_and_stopwords(self):
        concepts = extract_concepts("this that with cat dog photosynthesis about where")
        assert concepts == ["photosynthesis"]

    def test_punctuation_and_case_ignored(self):
        assert extract_concepts("Enzyme! enzyme, ENZYME?") == ["enzyme"]

    def test_at_most_ten_and_deterministic(self, study_text):
        first = extract_concepts(study_text)
        assert len(first) <= 10
        assert not set(first) & STOPWORDS
        assert first == extract_concepts(study_text)
        assert first[:2] == ["photosynthesis", "energy"]

    def test_empty_text(self):
        assert extract_concepts("") == []


class TestMediaQueries:
    def test_queries_from_top_concepts(self):
        text = "neuron synapse neuron cortex neuron synapse"
        assert generate_media_search_queries(text) == [
            "neuron synapse",
            "neuron education learning",
            "cortex diagram illustration",
        ]

    def test_single_concept(self):
        assert generate_media_search_queries("neuron") == ["neuron education learning"]

    def test_max_queries(self):
        text = "neuron synapse neuron cortex"
        assert len(generate_media_search_queries(text, max_queries=1)) == 1
