"""
Unit tests for the template content generator
"""
from unittest.mock import patch

from upcora.services.generator import ContentGenerator, TemplateContentGenerator, build_game_data
from upcora.services.media import MediaSearchResult, search_media_content
from upcora.services.scoring import score_answers
from tests.documents import STUDY_TEXT


class TestTemplateGenerator:
    def test_generate_shape(self):
        game = TemplateContentGenerator().generate(STUDY_TEXT)

        assert game["title"] == "Interactive Learning: Photosynthesis converts light energy into..."
        assert game["keyTopics"] == ["photosynthesis", "energy", "light"]
        for section in ("summary", "roadmap", "diagrams", "video", "mediaContent", "roleplay", "quiz", "gamification"):
            assert section in game
        assert len(game["quiz"]["questions"]) >= 1
        assert len(game["gamification"]["achievements"]) >= 1

    def test_is_a_content_generator(self):
        assert isinstance(TemplateContentGenerator(), ContentGenerator)

    def test_keywords_flow_into_template(self):
        game = TemplateContentGenerator().generate(STUDY_TEXT)
        assert "photosynthesis" in game["quiz"]["questions"][0]["question"]
        assert "photosynthesis" in game["summary"]

    def test_fallbacks_without_keywords(self):
        game = build_game_data("a b c", [])
        assert game["title"] == "Interactive Learning: a b c..."
        assert game["keyTopics"] == []
        assert "learning" in game["summary"]

    def test_media_search_is_empty(self):
        result = search_media_content(STUDY_TEXT)
        assert isinstance(result, MediaSearchResult)
        assert result.total_found == 0
        game = build_game_data(STUDY_TEXT, ["photosynthesis"], result)
        assert game["mediaContent"]["videos"] == []
        assert game["mediaContent"]["conceptImages"] == []

    def test_delay_applied(self):
        with patch("upcora.services.generator.time.sleep") as sleep:
            TemplateContentGenerator(delay_seconds=3).generate(STUDY_TEXT)
        sleep.assert_called_once_with(3)

    def test_no_delay_by_default(self):
        with patch("upcora.services.generator.time.sleep") as sleep:
            TemplateContentGenerator().generate(STUDY_TEXT)
        sleep.assert_not_called()

    def test_generated_quiz_is_gradeable(self):
        questions = TemplateContentGenerator().generate(STUDY_TEXT)["quiz"]["questions"]
        answers = {}
        for q in questions:
            if q["type"] == "multiple-choice":
                answers[q["id"]] = q["answerIndex"]
            elif q["type"] == "drag-drop":
                answers[q["id"]] = q["correctMapping"]
            elif q["type"] == "sequencing":
                answers[q["id"]] = q["correctOrder"]
        result = score_answers(questions, answers)
        assert result.score == result.max_score
        assert result.correct_answers == len(questions)
