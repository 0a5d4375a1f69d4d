import asyncio

import pytest

from vocabforge.config import Config
from vocabforge.exceptions import GenerationFailed, NoEligibleItems
from vocabforge.models import AppStats, LanguageLevel, SessionOutcome, StudySource, WordStatus
from vocabforge.providers import GeneratedWord, Translation
from vocabforge.services import StorageBackend, StorageService, VocabularyService, create_repository
from vocabforge.services.repository import SQLiteRepository
from vocabforge.services.vocabulary_service import next_streak
from vocabforge.utils.helpers import MS_PER_DAY

from conftest import NOW


@pytest.fixture
def service(orchestrator):
    service = VocabularyService(StorageService(), orchestrator)
    service.load()
    return service


class TestAddWord:
    def test_native_only_is_translated(self, service, text_provider):
        text_provider.translation = Translation("cat", "The cat sleeps.")

        item = asyncio.run(service.add_word(gloss="kot"))

        assert item.headword == "cat"
        assert item.example_sentence == "The cat sleeps."
        assert item.category == Config.DEFAULT_CATEGORY
        assert not item.generated
        assert text_provider.calls == [("translate", "kot", Config.NATIVE_LANGUAGE)]

    def test_target_only_is_translated_back(self, service, text_provider):
        text_provider.translation = Translation("pies", "The dog barks.")

        item = asyncio.run(service.add_word(headword="dog", category="zwierzęta", level=LanguageLevel.A1))

        assert item.gloss == "pies"
        assert item.category == "zwierzęta"
        assert item.level == LanguageLevel.A1
        assert text_provider.calls == [("translate", "dog", Config.TARGET_LANGUAGE)]

    def test_both_forms_get_an_example(self, service, text_provider):
        item = asyncio.run(service.add_word(gloss="brzeg", headword="bank"))

        assert item.example_sentence == "The cat sleeps."
        assert text_provider.calls == [("generate_example", "bank", "brzeg")]

    def test_new_word_is_saved(self, service):
        item = asyncio.run(service.add_word(gloss="brzeg", headword="bank"))

        assert item.status == WordStatus.NEW
        assert service.count == 6
        assert service.stats.total_words == 6
        assert StorageService().load()[-1].id == item.id

    def test_neither_form(self, service):
        with pytest.raises(ValueError):
            asyncio.run(service.add_word("  ", ""))

    def test_translation_failure_adds_nothing(self, service, text_provider):
        async def broken(term, source_language):
            raise GenerationFailed("quota", provider="fake_text")
        text_provider.translate = broken

        with pytest.raises(GenerationFailed):
            asyncio.run(service.add_word(gloss="kot"))
        assert service.count == 5

    def test_without_orchestrator_both_forms_are_required(self):
        service = VocabularyService(StorageService())
        service.load()

        with pytest.raises(GenerationFailed):
            asyncio.run(service.add_word(gloss="kot"))
        assert asyncio.run(service.add_word(gloss="kot", headword="cat")).example_sentence is None


class TestGenerateWords:
    def test_excludes_existing_headwords(self, service, text_provider):
        text_provider.words = [GeneratedWord("river", "rzeka", "The river is wide.")]

        added = asyncio.run(service.generate_words("nature", LanguageLevel.B2, 3))

        _, topic, level, count, exclude = text_provider.calls[0]
        assert (topic, level, count) == ("nature", LanguageLevel.B2, 3)
        assert set(exclude) == {"house", "cat", "car", "job", "happiness"}
        assert [item.headword for item in added] == ["river"]
        assert service.filter(StudySource.AI_GENERATED) == added
        assert len(service.filter(StudySource.MANUAL)) == 5


class TestMutations:
    def test_delete(self, service):
        changes = []
        service.on_change(lambda: changes.append(service.count))

        assert service.delete("1")
        assert not service.delete("1")
        assert service.get("1") is None
        assert changes == [4]

    def test_set_image_ref(self, service):
        service.set_image_ref("2", "https://img/cat.jpg")

        assert service.get("2").image_ref == "https://img/cat.jpg"
        assert StorageService().load()[1].image_ref == "https://img/cat.jpg"


class TestReview:
    def test_select_for_review_uses_preferred_source(self, service):
        service.storage.save_settings({"PREFERRED_STUDY_SOURCE": "ai"})

        with pytest.raises(NoEligibleItems):
            service.select_for_review(now=NOW)

        assert len(service.select_for_review(StudySource.MANUAL, now=NOW)) == 5

    def test_apply_session_results(self, service):
        service.apply_session_results([SessionOutcome("1", True), SessionOutcome("2", False)], now=NOW)

        house, cat = service.get("1"), service.get("2")
        assert house.correct_streak == 1
        assert house.next_review_at == NOW + MS_PER_DAY
        assert cat.status == WordStatus.LEARNING
        assert service.get("3").status == WordStatus.NEW
        assert service.stats.streak_days == 1
        assert service.stats.last_study_date == NOW
        assert StorageService().load_stats().last_study_date == NOW
        assert service.count_due(now=NOW + MS_PER_DAY) == 2
        assert service.count_new() == 3


class TestStreak:
    @pytest.mark.parametrize("last, streak, now, expected", [
        (0, 0, NOW, 1),
        (NOW, 4, NOW, 4),
        (NOW, 0, NOW, 1),
        (NOW, 4, NOW + MS_PER_DAY, 5),
        (NOW, 4, NOW + 3 * MS_PER_DAY, 1),
    ])
    def test_next_streak(self, last, streak, now, expected):
        assert next_streak(AppStats(streak_days=streak, last_study_date=last), now) == expected


def test_create_repository(tmp_path):
    assert isinstance(create_repository(StorageBackend.SQLITE, str(tmp_path / "v.db")), SQLiteRepository)
    assert create_repository("csv", str(tmp_path / "v.csv")).csv_path.name == "v.csv"


@pytest.mark.parametrize("backend", [StorageBackend.CSV, StorageBackend.SQLITE])
def test_emptied_collection_is_not_reseeded(tmp_path, backend):
    path = str(tmp_path / f"words.{backend.value}")
    service = VocabularyService(StorageService(create_repository(backend, path)))
    for item in service.load():
        service.delete(item.id)

    again = VocabularyService(StorageService(create_repository(backend, path)))
    again.load()

    assert again.count == 0
