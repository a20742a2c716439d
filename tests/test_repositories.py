"""Tests for the SQLite repositories."""

import json
from pathlib import Path

import pytest

from kiemusic.db import (
    GenerationRepository,
    ProjectRepository,
    StemSeparationRepository,
    create_db_engine,
    create_session_factory,
    init_db,
)
from kiemusic.errors import NotFoundError
from kiemusic.models import GenerationTrackData, GenerationTrackUpdate, StemFields


@pytest.fixture
def session_factory(tmp_path: Path):
    engine = create_db_engine(tmp_path / "test.db")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def projects(session_factory) -> ProjectRepository:
    return ProjectRepository(session_factory)


@pytest.fixture
def generations(session_factory) -> GenerationRepository:
    return GenerationRepository(session_factory)


@pytest.fixture
def stems(session_factory) -> StemSeparationRepository:
    return StemSeparationRepository(session_factory)


def _track(audio_id: str) -> GenerationTrackData:
    return GenerationTrackData(
        stream_url=f"https://s/{audio_id}",
        audio_url=f"https://a/{audio_id}.mp3",
        image_url=f"https://i/{audio_id}.jpg",
        duration=120.0,
        audio_id=audio_id,
    )


class TestProjectRepository:
    def test_create_and_get(self, projects: ProjectRepository) -> None:
        project = projects.create("Album")
        assert project.id > 0
        assert project.name == "Album"
        assert project.created_at is not None
        assert projects.get(project.id) == project

    def test_default_name(self, projects: ProjectRepository) -> None:
        assert projects.create().name == "New Project"

    def test_list_all(self, projects: ProjectRepository) -> None:
        first = projects.create("One")
        second = projects.create("Two")
        assert {p.id for p in projects.list_all()} == {first.id, second.id}

    def test_rename(self, projects: ProjectRepository) -> None:
        project = projects.create("Old")
        assert projects.rename(project.id, "New").name == "New"
        assert projects.get(project.id).name == "New"

    def test_rename_missing(self, projects: ProjectRepository) -> None:
        with pytest.raises(NotFoundError):
            projects.rename(999, "Nope")

    def test_delete_cascades(
        self, projects: ProjectRepository, generations: GenerationRepository
    ) -> None:
        project = projects.create("Album")
        generation = generations.create(project.id, "Song", "pop", "la la")

        assert projects.delete(project.id) is True
        assert generations.get(generation.id) is None
        assert projects.delete(project.id) is False


class TestGenerationRepository:
    @pytest.fixture(autouse=True)
    def _project(self, projects: ProjectRepository) -> None:
        self.project_id = projects.create("Album").id

    def test_create(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        assert generation.status == "pending"
        assert generation.task_id is None
        assert generation.extends_generation_id is None

    def test_create_extension(self, generations: GenerationRepository) -> None:
        parent = generations.create(self.project_id, "Song", "pop", "la la")
        child = generations.create_extension(
            self.project_id, "Song 2", "pop", "la la la", parent.id, "a1", 42.5
        )

        assert child.extends_generation_id == parent.id
        assert child.continue_at == 42.5
        assert [g.id for g in generations.list_extensions(parent.id, "a1")] == [child.id]
        assert generations.list_extensions(parent.id, "a2") == []

    def test_create_imported(
        self, generations: GenerationRepository, projects: ProjectRepository
    ) -> None:
        generation = generations.create_imported(
            "Imported: Song", "t9", "Song", "pop", "la la", _track("a1"), _track("a2"), "{}"
        )

        assert generation.status == "success"
        assert generation.task_id == "t9"
        assert generation.track1_audio_url == "https://a/a1.mp3"
        assert generation.track2_audio_id == "a2"
        assert projects.get(generation.project_id).name == "Imported: Song"
        assert generation.id not in {g.id for g in generations.get_pending()}

    def test_task_started(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        assert generations.set_task_started(generation.id, "t1") is True

        stored = generations.get(generation.id)
        assert stored.task_id == "t1"
        assert stored.status == "processing"

    def test_task_started_after_delete(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        generations.delete(generation.id)

        assert generations.set_task_started(generation.id, "t1") is False
        assert generations.get(generation.id) is None

    def test_set_status_clears_error(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        generations.set_errored(generation.id, "boom")
        assert generations.get(generation.id).error_message == "boom"

        generations.set_status(generation.id, "first_success")
        stored = generations.get(generation.id)
        assert stored.status == "first_success"
        assert stored.error_message is None

    def test_set_status_rejects_unknown(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        with pytest.raises(ValueError):
            generations.set_status(generation.id, "exploded")

    def test_set_completed(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        generations.set_completed(generation.id, _track("a1"), _track("a2"), '{"taskId": "t1"}')

        stored = generations.get(generation.id)
        assert stored.status == "success"
        assert stored.track1_audio_url == "https://a/a1.mp3"
        assert stored.track2_audio_id == "a2"
        assert stored.track2_duration == 120.0
        assert json.loads(stored.response_data) == {"taskId": "t1"}

    def test_set_completed_keeps_preview_url(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        generations.update_provisional_fields(
            generation.id, GenerationTrackUpdate(stream_url="https://s/preview")
        )
        final = GenerationTrackData(
            stream_url=None,
            audio_url="https://a/a1.mp3",
            image_url=None,
            duration=120.0,
            audio_id="a1",
        )
        generations.set_completed(generation.id, final, _track("a2"), "{}")

        stored = generations.get(generation.id)
        assert stored.status == "success"
        assert stored.track1_stream_url == "https://s/preview"
        assert stored.track1_audio_url == "https://a/a1.mp3"
        assert stored.track1_image_url is None
        assert stored.track2_stream_url == "https://s/a2"

    def test_provisional_merge_keeps_stored_values(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        generations.update_provisional_fields(
            generation.id,
            GenerationTrackUpdate(stream_url="https://s/1", image_url="https://i/1", audio_id="a1"),
            GenerationTrackUpdate(stream_url="https://s/2"),
        )
        generations.update_provisional_fields(
            generation.id,
            GenerationTrackUpdate(stream_url="", image_url=None),
            GenerationTrackUpdate(image_url="https://i/2"),
        )

        stored = generations.get(generation.id)
        assert stored.track1_stream_url == "https://s/1"
        assert stored.track1_image_url == "https://i/1"
        assert stored.track1_audio_id == "a1"
        assert stored.track2_stream_url == "https://s/2"
        assert stored.track2_image_url == "https://i/2"

    def test_provisional_merge_without_second_track(self, generations: GenerationRepository) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        generations.update_provisional_fields(
            generation.id, GenerationTrackUpdate(stream_url="https://s/1"), response_data="{}"
        )

        stored = generations.get(generation.id)
        assert stored.track1_stream_url == "https://s/1"
        assert stored.track2_stream_url is None
        assert stored.response_data == "{}"

    def test_get_pending(self, generations: GenerationRepository) -> None:
        pending = generations.create(self.project_id, "A", "pop", "la")
        processing = generations.create(self.project_id, "B", "pop", "la")
        done = generations.create(self.project_id, "C", "pop", "la")
        failed = generations.create(self.project_id, "D", "pop", "la")
        generations.set_task_started(processing.id, "t2")
        generations.set_completed(done.id, _track("a1"), _track("a2"), "{}")
        generations.set_errored(failed.id, "boom")

        assert {g.id for g in generations.get_pending()} == {pending.id, processing.id}

    def test_list_by_project(self, generations: GenerationRepository) -> None:
        first = generations.create(self.project_id, "A", "pop", "la")
        second = generations.create(self.project_id, "B", "pop", "la")
        assert {g.id for g in generations.list_by_project(self.project_id)} == {first.id, second.id}

    def test_delete(
        self, generations: GenerationRepository, stems: StemSeparationRepository
    ) -> None:
        generation = generations.create(self.project_id, "Song", "pop", "la la")
        separation = stems.create(generation.id, "a1", "separate_vocal")

        assert generations.delete(generation.id) is True
        assert generations.get(generation.id) is None
        assert stems.get(separation.id) is None
        assert generations.delete(generation.id) is False


class TestStemSeparationRepository:
    @pytest.fixture(autouse=True)
    def _generation(self, projects: ProjectRepository, generations: GenerationRepository) -> None:
        project = projects.create("Album")
        self.generation_id = generations.create(project.id, "Song", "pop", "la la").id

    def test_create(self, stems: StemSeparationRepository) -> None:
        separation = stems.create(self.generation_id, "a1", "split_stem")
        assert separation.type.value == "split_stem"
        assert separation.status == "pending"

    def test_invalid_type(self, stems: StemSeparationRepository) -> None:
        with pytest.raises(ValueError):
            stems.create(self.generation_id, "a1", "karaoke")

    def test_latest_by_type(self, stems: StemSeparationRepository) -> None:
        stems.create(self.generation_id, "a1", "separate_vocal")
        newer = stems.create(self.generation_id, "a1", "separate_vocal")
        stems.create(self.generation_id, "a1", "split_stem")

        latest = stems.get_latest_by_type(self.generation_id, "a1", "separate_vocal")
        assert latest.id == newer.id
        assert stems.get_latest_by_type(self.generation_id, "a2", "separate_vocal") is None

    def test_list_for_song(self, stems: StemSeparationRepository) -> None:
        a = stems.create(self.generation_id, "a1", "separate_vocal")
        stems.create(self.generation_id, "a2", "separate_vocal")

        assert [s.id for s in stems.list_for_song(self.generation_id, "a1")] == [a.id]
        assert len(stems.list_by_generation(self.generation_id)) == 2

    def test_lifecycle(self, stems: StemSeparationRepository) -> None:
        separation = stems.create(self.generation_id, "a1", "separate_vocal")
        assert stems.set_task_started(separation.id, "s1") is True
        assert stems.get(separation.id).status == "processing"
        assert [s.id for s in stems.get_pending()] == [separation.id]

        stems.set_completed(
            separation.id,
            StemFields(vocal_url="https://v.mp3", instrumental_url="https://i.mp3"),
            '{"taskId": "s1"}',
        )

        stored = stems.get(separation.id)
        assert stored.status == "success"
        assert stored.vocal_url == "https://v.mp3"
        assert stored.drums_url is None
        assert stems.get_pending() == []

    def test_errored(self, stems: StemSeparationRepository) -> None:
        separation = stems.create(self.generation_id, "a1", "separate_vocal")
        stems.set_errored(separation.id, "Stem separation timed out")

        stored = stems.get(separation.id)
        assert stored.status == "error"
        assert stored.error_message == "Stem separation timed out"
