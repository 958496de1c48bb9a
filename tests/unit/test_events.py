import asyncio

from mockprep.core.events import EventBus


def test_publish_reaches_only_registered_listeners_of_that_user() -> None:
    async def scenario():
        bus = EventBus()
        first = await bus.register("u1")
        second = await bus.register("u1")
        other = await bus.register("u2")

        await bus.publish("u1", {"title": "Saved"})
        await bus.unregister("u1", second)
        await bus.publish("u1", {"title": "Deleted"})
        return first, second, other

    first, second, other = asyncio.run(scenario())
    assert [first.get_nowait(), first.get_nowait()] == [{"title": "Saved"}, {"title": "Deleted"}]
    assert second.get_nowait() == {"title": "Saved"}
    assert second.empty()
    assert other.empty()
