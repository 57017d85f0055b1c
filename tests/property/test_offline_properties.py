"""Property-based tests for offline edits converging after replay."""

from __future__ import annotations

import asyncio

from hypothesis import given, settings, strategies as st

from tests.fakes import make_harness

texts = st.text(alphabet="abcdefghij", min_size=1, max_size=8)

operations = st.lists(
    st.one_of(
        st.tuples(st.just("create"), texts),
        st.tuples(st.just("update"), st.integers(min_value=0, max_value=9), texts),
        st.tuples(st.just("delete"), st.integers(min_value=0, max_value=9)),
    ),
    max_size=15,
)


class TestOfflineConvergence:
    @given(program=operations)
    @settings(max_examples=60, deadline=None)
    def test_replay_makes_server_match_local_edits(self, program) -> None:
        """Whatever was edited offline ends up on the server once, in its last state."""

        async def scenario():
            harness = make_harness("comment", online=False)
            live: list[str] = []
            expected: dict[str, str] = {}

            for step in program:
                if step[0] == "create":
                    comment = await harness.coordinator.create(doc_id="doc-1", content=step[1])
                    live.append(comment.id)
                    expected[comment.id] = step[1]
                elif not live:
                    continue
                elif step[0] == "update":
                    target = live[step[1] % len(live)]
                    await harness.coordinator.update(target, content=step[2])
                    expected[target] = step[2]
                else:
                    target = live.pop(step[1] % len(live))
                    await harness.coordinator.delete(target)
                    del expected[target]

            harness.connectivity.online = True
            report = await harness.coordinator.replay_pending_jobs()
            return harness, expected, report

        harness, expected, report = asyncio.run(scenario())

        assert report.failed == 0
        assert sorted(c.content for c in harness.remote.server.values()) == sorted(
            expected.values()
        )
        assert harness.store.records.keys() == harness.remote.server.keys()
        assert all(c.is_synced() for c in harness.store.records.values())
        assert harness.jobs.rows == {}
