"""
Test Suite — Event Dispatcher
──────────────────────────────
Stage ordering, failure containment and isolation between events.
"""

import asyncio
import unittest

from helpers import ScriptedPipeline, make_payload

from review_bot.dispatcher import EventDispatcher
from review_bot.events import parse_event
from review_bot.github_client import ChangedFile


def make_dispatcher(pipeline: ScriptedPipeline, **kwargs) -> EventDispatcher:
    return EventDispatcher(
        credentials=pipeline,
        fetch_changes=pipeline.fetch,
        generator=pipeline,
        publisher=pipeline,
        **kwargs,
    )


def make_event(delivery: str = "d-1", **payload_kwargs):
    return parse_event("pull_request", delivery, make_payload(**payload_kwargs))


class TestPipelineOrdering(unittest.IsolatedAsyncioTestCase):

    async def test_stages_run_once_in_order(self):
        pipeline = ScriptedPipeline()
        await make_dispatcher(pipeline).dispatch(make_event())
        self.assertEqual(pipeline.stages, ["acquire", "fetch", "generate", "publish"])

    async def test_example_pull_request(self):
        files = [ChangedFile(path="a.ts", status="modified")]
        pipeline = ScriptedPipeline(files=files)
        event = make_event(number=7, installation_id=42, owner="acme", name="widgets")

        with self.assertNoLogs("review_bot.dispatcher", level="ERROR"):
            await make_dispatcher(pipeline).dispatch(event)

        acquire, fetch, generate, publish = pipeline.calls
        self.assertEqual(acquire, ("acquire", 42))
        self.assertEqual(fetch, ("fetch", "client-42", "acme", "widgets", 7))

        _, client, payload, generated_from, inline = generate
        self.assertEqual(client, "client-42")
        self.assertEqual(generated_from, files)
        self.assertIs(inline, True)
        self.assertIs(payload, event.raw_payload)

        _, client, payload, review = publish
        self.assertEqual(client, "client-42")
        self.assertIs(payload, event.raw_payload)
        self.assertIs(review, pipeline.review)

    async def test_success_is_logged_with_pr_number(self):
        pipeline = ScriptedPipeline()
        with self.assertLogs("review_bot.dispatcher", level="INFO") as cm:
            await make_dispatcher(pipeline).dispatch(make_event(number=12))
        self.assertIn("acme/widgets#12", cm.output[-1])
        self.assertIn("Successfully processed", cm.output[-1])


class TestFailureContainment(unittest.IsolatedAsyncioTestCase):

    async def _run_failing(self, stage: str, number: int = 9):
        pipeline = ScriptedPipeline(fail_at=stage)
        with self.assertLogs("review_bot.dispatcher", level="ERROR") as cm:
            await make_dispatcher(pipeline).dispatch(make_event(number=number))
        return pipeline, cm.records

    async def test_credential_failure_stops_pipeline(self):
        pipeline, records = await self._run_failing("acquire")
        self.assertEqual(pipeline.stages, ["acquire"])
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].context["pull_request_number"], 9)
        self.assertEqual(records[0].context["stage"], "acquire_credentials")

    async def test_fetch_failure_stops_pipeline(self):
        pipeline, records = await self._run_failing("fetch", number=9)
        self.assertEqual(pipeline.stages, ["acquire", "fetch"])
        self.assertEqual(len(records), 1)
        record = records[0]
        self.assertIn("#9", record.getMessage())
        self.assertEqual(record.context["pull_request_number"], 9)
        self.assertEqual(record.context["repository"], "acme/widgets")
        self.assertIn("404 Not Found", record.context["error"])
        self.assertIsNotNone(record.exc_info)

    async def test_generation_failure_skips_publication(self):
        pipeline, records = await self._run_failing("generate")
        self.assertEqual(pipeline.stages, ["acquire", "fetch", "generate"])
        self.assertEqual(records[0].context["stage"], "generate_review")

    async def test_publication_failure_is_contained(self):
        pipeline, records = await self._run_failing("publish")
        self.assertEqual(pipeline.stages, ["acquire", "fetch", "generate", "publish"])
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].context["stage"], "publish_review")

    async def test_failed_event_does_not_block_next_event(self):
        pipeline = ScriptedPipeline(fail_at="fetch", fail_for=9)
        dispatcher = make_dispatcher(pipeline)

        with self.assertLogs("review_bot.dispatcher", level="ERROR"):
            await dispatcher.dispatch(make_event("d-1", number=9))
        await dispatcher.dispatch(make_event("d-2", number=10))

        published = [call for call in pipeline.calls if call[0] == "publish"]
        self.assertEqual(len(published), 1)
        self.assertEqual(published[0][2]["pull_request"]["number"], 10)


class TestDispatchTable(unittest.IsolatedAsyncioTestCase):

    async def test_only_opened_pull_requests_are_handled(self):
        pipeline = ScriptedPipeline()
        dispatcher = make_dispatcher(pipeline)
        closed = make_event(action="closed")

        self.assertFalse(dispatcher.handles(closed))
        await dispatcher.dispatch(closed)
        self.assertEqual(pipeline.calls, [])

    async def test_inline_suggestion_allowlist(self):
        pipeline = ScriptedPipeline()
        dispatcher = make_dispatcher(pipeline, inline_suggestion_repos=frozenset({5}))

        await dispatcher.dispatch(make_event("d-1", repo_id=5))
        await dispatcher.dispatch(make_event("d-2", repo_id=6))

        inline_flags = [call[4] for call in pipeline.calls if call[0] == "generate"]
        self.assertEqual(inline_flags, [True, False])

    async def test_concurrent_events_complete_independently(self):
        release = asyncio.Event()
        published = []

        class WaitingGenerator:
            async def generate(self, client, payload, files, inline):
                number = payload["pull_request"]["number"]
                if number == 1:
                    await release.wait()
                return {"pr": number}

        class RecordingPublisher:
            async def publish(self, client, payload, review):
                published.append(review["pr"])
                if review["pr"] == 2:
                    release.set()

        pipeline = ScriptedPipeline()
        dispatcher = EventDispatcher(
            credentials=pipeline,
            fetch_changes=pipeline.fetch,
            generator=WaitingGenerator(),
            publisher=RecordingPublisher(),
        )

        await asyncio.wait_for(
            asyncio.gather(
                dispatcher.dispatch(make_event("d-1", number=1)),
                dispatcher.dispatch(make_event("d-2", number=2)),
            ),
            timeout=5,
        )
        self.assertEqual(published, [2, 1])


if __name__ == "__main__":
    unittest.main(verbosity=2)
