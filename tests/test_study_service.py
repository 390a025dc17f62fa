import asyncio
import threading

import pytest

from edutube.services.cache import GenerationCache
from edutube.services.errors import GenerationTimeoutError, VideoNotFoundError, VideoNotReadyError
from edutube.services.retrieval import COVERAGE_QUERIES
from edutube.services.study import GenerateOptions, StudyService
from edutube.services.videos import VideoRecord
from fakes import FakeGenerator, FakeSearch, direct_payload, hit, unified_payload

VIDEOS = {
    "ready": VideoRecord(id="ready", status="ready", task_id="task-1", duration_sec=100),
    "indexing": VideoRecord(id="indexing", status="indexing", task_id="task-2"),
    "no-task": VideoRecord(id="no-task", status="ready"),
}


def _service(generator, search=None, **kwargs) -> StudyService:
    search = search or FakeSearch(
        default=[
            hit(10, 20, 0.9, text="Gradient descent updates parameters against the gradient of the loss."),
            hit(90, 140, 0.7, text="A learning rate that is too large makes the optimisation diverge badly."),
            hit(150, 160, 0.5, text="Starts after the video ends."),
        ]
    )
    return StudyService(search, generator, GenerationCache(), lookup_video=VIDEOS.get, **kwargs)


def test_generate_all_unified_end_to_end():
    gen = FakeGenerator([unified_payload()])
    service = _service(gen)

    materials = asyncio.run(service.generate_all("ready"))

    assert materials.video_id == "ready"
    assert materials.topics == ["Gradient Descent", "Learning Rate"]
    # ranges past the end are pulled back inside the video
    assert [(h.start_sec, h.end_sec) for h in materials.hits] == [(10, 20), (90, 100), (99, 100)]
    prompt = gen.calls[0]["messages"][-1]["content"]
    assert "[00:10–00:20] Gradient descent" in prompt


def test_generate_all_is_cached_per_options():
    gen = FakeGenerator([unified_payload(), unified_payload()])
    service = _service(gen)

    async def main():
        a = await service.generate_all("ready")
        b = await service.generate_all("ready", GenerateOptions())
        c = await service.generate_all("ready", GenerateOptions(topics_count=2))
        return a, b, c

    a, b, c = asyncio.run(main())
    assert a is b
    assert c is not a
    assert len(gen.calls) == 2


def test_single_query_is_used_when_given():
    search = FakeSearch(default=[hit(1, 2, text="entropy")])
    service = _service(FakeGenerator([unified_payload()]), search=search)
    asyncio.run(service.generate_all("ready", GenerateOptions(query="entropy", max_hits=3)))
    assert search.calls == [("ready", "task-1", "entropy", 3)]


def test_video_checks():
    service = _service(FakeGenerator([]))
    with pytest.raises(VideoNotFoundError):
        asyncio.run(service.generate_all("missing"))
    with pytest.raises(VideoNotReadyError):
        asyncio.run(service.generate_all("indexing"))
    with pytest.raises(VideoNotReadyError):
        asyncio.run(service.generate_all("no-task"))


def test_video_lookup_runs_off_the_event_loop():
    lookup_threads = []

    def lookup(video_id):
        lookup_threads.append(threading.get_ident())
        return VIDEOS.get(video_id)

    search = FakeSearch(default=[hit(0, 60, text="Gradient descent " * 20)])
    gen = FakeGenerator([unified_payload(), direct_payload()])
    service = StudyService(search, gen, GenerationCache(), lookup_video=lookup)

    async def main():
        loop_thread = threading.get_ident()
        await service.generate_all("ready")
        await service.generate_direct("ready")
        return loop_thread

    loop_thread = asyncio.run(main())
    assert len(lookup_threads) == 2
    assert loop_thread not in lookup_threads


def test_timeout_surfaces_as_generation_timeout():
    class SlowGenerator(FakeGenerator):
        async def generate(self, messages, *, temperature=None, json_mode=False) -> str:
            await asyncio.sleep(0.2)
            return await super().generate(messages, temperature=temperature, json_mode=json_mode)

    service = _service(SlowGenerator([unified_payload()]), default_timeout=0.01)
    with pytest.raises(GenerationTimeoutError):
        asyncio.run(service.generate_all("ready"))


def test_generate_direct_attaches_video_and_hits():
    search = FakeSearch(results={q: [] for q in COVERAGE_QUERIES})
    search.results[COVERAGE_QUERIES[0]] = [
        hit(0, 30, 0.9, text="Gradient descent updates parameters against the gradient of the loss function."),
        hit(30, 60, 0.8, text="The learning rate scales each step; if it is too large the optimisation diverges."),
    ]
    service = _service(FakeGenerator([direct_payload(quiz_timestamp="02:30")]), search=search)

    materials = asyncio.run(service.generate_direct("ready"))

    assert materials.video_id == "ready"
    assert len(materials.hits) == 2
    assert materials.quiz[0].timestamp == "01:40"


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError):
        GenerateOptions(strategy="magic")  # type: ignore[arg-type]


def test_options_round_trip_from_dict():
    opts = GenerateOptions.from_dict({"topics_count": 3, "strategy": "chain", "ignored": 1})
    assert opts.topics_count == 3
    assert opts.strategy == "chain"
    assert opts.signature() != GenerateOptions().signature()
