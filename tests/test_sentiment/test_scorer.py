"""Tests for lexicon sentiment scoring."""

import pytest

from meme_radar.ingestion.preprocessor import TickerDetector
from meme_radar.sentiment.lexicon import BEARISH_KEYWORDS, BULLISH_KEYWORDS, Keyword
from meme_radar.sentiment.schemas import SentimentCategory, SentimentResult
from meme_radar.sentiment.service import SentimentScorer, categorize


@pytest.fixture
def scorer() -> SentimentScorer:
    return SentimentScorer()


class TestCategorize:
    """Category boundaries."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (1.0, SentimentCategory.STRONG_BULLISH),
            (0.61, SentimentCategory.STRONG_BULLISH),
            (0.6, SentimentCategory.BULLISH),
            (0.2, SentimentCategory.BULLISH),
            (0.19, SentimentCategory.NEUTRAL),
            (0.0, SentimentCategory.NEUTRAL),
            (-0.2, SentimentCategory.NEUTRAL),
            (-0.21, SentimentCategory.BEARISH),
            (-0.6, SentimentCategory.BEARISH),
            (-0.61, SentimentCategory.STRONG_BEARISH),
            (-1.0, SentimentCategory.STRONG_BEARISH),
        ],
    )
    def test_boundaries(self, score, expected):
        assert categorize(score) is expected


class TestSentimentScorer:
    """Tests for SentimentScorer."""

    def test_rocket_scenario(self, scorer: SentimentScorer):
        result = scorer.score("🚀🚀🚀 $GME to the moon! YOLO diamond hands 💎🙌", ticker="GME")

        assert result.score > 0
        assert result.category is SentimentCategory.STRONG_BULLISH
        assert "to the moon" in result.keywords
        assert "diamond hands" in result.keywords
        assert result.bearish_keywords == ()

    @pytest.mark.parametrize("text", [None, "", "The quarterly report is out on Tuesday"])
    def test_no_matches_is_neutral_zero(self, scorer: SentimentScorer, text):
        result = scorer.score(text)

        assert result.score == 0.0
        assert result.category is SentimentCategory.NEUTRAL
        assert result.keywords == []

    @pytest.mark.parametrize(
        "text",
        [
            "🚀" * 50,
            "puts puts puts crash dump rug pull paper hands bag holder FUD",
            "calls and puts",
            "YOLO " * 20 + "crash " * 3,
            "just some words",
        ],
    )
    def test_score_is_bounded(self, scorer: SentimentScorer, text: str):
        assert -1.0 <= scorer.score(text).score <= 1.0

    def test_weight_times_occurrences(self, scorer: SentimentScorer):
        # 2 * calls(2) = 4 -> 0.4
        assert scorer.score("calls, more calls").score == pytest.approx(0.4)

    def test_net_of_bullish_and_bearish(self, scorer: SentimentScorer):
        # yolo(3) - puts(3) = 0
        result = scorer.score("yolo on puts")

        assert result.score == 0.0
        assert result.category is SentimentCategory.NEUTRAL
        assert result.bullish_keywords == ("yolo",)
        assert result.bearish_keywords == ("puts",)

    def test_strong_bearish(self, scorer: SentimentScorer):
        result = scorer.score("Paper hands everywhere, this will crash and dump")

        assert result.score == pytest.approx(-0.9)
        assert result.category is SentimentCategory.STRONG_BEARISH

    def test_short_squeeze_is_not_short(self, scorer: SentimentScorer):
        result = scorer.score("short squeeze incoming")

        assert result.bullish_keywords == ("short squeeze",)
        assert result.bearish_keywords == ()

    def test_word_boundaries(self, scorer: SentimentScorer):
        assert scorer.score("yolonaut longing computers").score == 0.0

    def test_case_insensitive(self, scorer: SentimentScorer):
        assert scorer.score("HODL").score == scorer.score("hodl").score == pytest.approx(0.3)

    def test_ticker_does_not_change_score(self, scorer: SentimentScorer):
        text = "tendies incoming"
        assert scorer.score(text, "GME") == scorer.score(text, "AMC") == scorer.score(text)

    def test_pipeline_is_repeatable(self, scorer: SentimentScorer):
        detector = TickerDetector()
        text = "$GME and AMC 🚀 but TSLA puts, bag holders beware"

        first = [(t, scorer.score(text, t).to_dict()) for t in detector.detect(text)]
        second = [(t, scorer.score(text, t).to_dict()) for t in detector.detect(text)]

        assert first == second
        assert repr(first) == repr(second)

    def test_to_dict(self, scorer: SentimentScorer):
        data = scorer.score("bullish on tendies").to_dict()

        assert data["category"] == "bullish"
        assert data["bullish_keywords"] == ["tendies", "bullish"]


class TestLexicon:
    """Tests for keyword definitions."""

    def test_weights_in_range(self):
        for keyword in BULLISH_KEYWORDS + BEARISH_KEYWORDS:
            assert 1 <= keyword.weight <= 3

    def test_rejects_bad_weight(self):
        with pytest.raises(ValueError):
            Keyword("nope", 4, terms=("nope",))

    def test_rejects_empty_keyword(self):
        with pytest.raises(ValueError):
            Keyword("empty", 1)

    def test_phrase_allows_whitespace_runs(self):
        keyword = Keyword("buy the dip", 2, terms=("buy the dip",))
        assert keyword.count("BUY  THE\nDIP") == 1

    def test_custom_lexicon(self):
        scorer = SentimentScorer(
            bullish=(Keyword("lambo", 3, terms=("lambo",)),),
            bearish=(),
        )
        result = scorer.score("lambo lambo")

        assert isinstance(result, SentimentResult)
        assert result.score == pytest.approx(0.6)
        assert result.category is SentimentCategory.BULLISH
