"""
Concurrency tests: creation locks, context-local resolution stacks and
cancellation of pending async factories.
"""
import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from di.container import current_resolution_path
from di.errors import CircularDependencyError, FactoryError

pytestmark = pytest.mark.concurrency


class Service:
    pass


class TestThreadedResolution:
    """Tests for resolving from several threads at once."""

    def test_singleton_created_once_across_threads(self, container, token, counter):
        """Five racing threads share one instance and call the factory once."""
        service = token("Service")
        barrier = threading.Barrier(5)

        def build(_resolver):
            counter.increment()
            time.sleep(0.05)
            return Service()

        container.register(service, build)

        def worker():
            barrier.wait()
            return container.resolve(service)

        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(pool.map(lambda _: worker(), range(5)))

        assert counter.value == 1
        assert all(result is results[0] for result in results)

    def test_scoped_created_once_per_scope_across_threads(self, container, token, counter):
        request = token("Request")
        barrier = threading.Barrier(4)

        def build(_resolver):
            counter.increment()
            time.sleep(0.02)
            return Service()

        container.register_scoped(request, build)
        scope = container.create_scope()

        def worker():
            barrier.wait()
            return scope.resolve(request)

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: worker(), range(4)))

        assert counter.value == 1
        assert all(result is results[0] for result in results)

    def test_async_singleton_created_once_across_event_loops(self, container, token, counter):
        """Threads running their own event loops share one async singleton."""
        service = token("Service")
        barrier = threading.Barrier(2)

        async def build(_resolver):
            counter.increment()
            await asyncio.sleep(0.2)
            return Service()

        container.register(service, build)

        def worker():
            barrier.wait(timeout=5)
            return asyncio.run(container.resolve_async(service))

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(worker) for _ in range(2)]
            results = [future.result(timeout=5) for future in futures]

        assert counter.value == 1
        assert results[0] is results[1]

    def test_failed_async_creation_lets_other_loop_retry(self, container, token, counter):
        service = token("Service")
        first_started = threading.Event()

        async def build(_resolver):
            if counter.increment() == 1:
                first_started.set()
                await asyncio.sleep(0.1)
                raise RuntimeError("transient failure")
            return Service()

        container.register(service, build)

        def first():
            with pytest.raises(FactoryError):
                asyncio.run(container.resolve_async(service))

        def second():
            assert first_started.wait(timeout=5)
            return asyncio.run(container.resolve_async(service))

        with ThreadPoolExecutor(max_workers=2) as pool:
            failing = pool.submit(first)
            retrying = pool.submit(second)
            failing.result(timeout=5)
            resolved = retrying.result(timeout=5)

        assert isinstance(resolved, Service)
        assert counter.value == 2

    def test_independent_resolutions_do_not_look_circular(self, container, token):
        """Each thread has its own resolution stack."""
        slow = token("Slow")
        barrier = threading.Barrier(2)

        def build(_resolver):
            barrier.wait(timeout=5)
            return Service()

        container.register_transient(slow, build)

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(container.resolve, slow) for _ in range(2)]
            results = [future.result(timeout=5) for future in futures]

        assert results[0] is not results[1]

    def test_different_singletons_do_not_block_each_other(self, container, token):
        """Creation locks are per registration."""
        first = token("First")
        second = token("Second")
        first_started = threading.Event()

        def build_first(_resolver):
            first_started.set()
            time.sleep(0.1)
            return "first"

        container.register(first, build_first)
        container.register(second, lambda r: "second")

        with ThreadPoolExecutor(max_workers=1) as pool:
            pending = pool.submit(container.resolve, first)
            assert first_started.wait(timeout=5)
            assert container.resolve(second) == "second"
            assert not pending.done()
            assert pending.result(timeout=5) == "first"


class TestAsyncResolution:
    """Tests for resolve_async under concurrent tasks."""

    @pytest.mark.asyncio
    async def test_async_singleton_created_once(self, container, token, counter):
        """Five concurrent tasks share one instance and call the factory once."""
        service = token("Service")

        async def build(_resolver):
            counter.increment()
            await asyncio.sleep(0.01)
            return Service()

        container.register(service, build)

        results = await asyncio.gather(*(container.resolve_async(service) for _ in range(5)))

        assert counter.value == 1
        assert all(result is results[0] for result in results)

    @pytest.mark.asyncio
    async def test_sync_factory_through_resolve_async(self, container, token):
        service = token("Service")
        container.register(service, lambda r: Service())

        assert await container.resolve_async(service) is container.resolve(service)

    @pytest.mark.asyncio
    async def test_async_dependency_chain(self, container, token):
        config = token("Config")
        service = token("Service")

        async def build_config(_resolver):
            await asyncio.sleep(0)
            return {"strict": True}

        async def build_service(resolver):
            return (await resolver.resolve_async(config))["strict"]

        container.register(config, build_config)
        container.register(service, build_service)

        assert await container.resolve_async(service) is True

    @pytest.mark.asyncio
    async def test_async_cycle_detected(self, container, token):
        a = token("A")
        b = token("B")

        async def build_a(resolver):
            return await resolver.resolve_async(b)

        async def build_b(resolver):
            return await resolver.resolve_async(a)

        container.register(a, build_a)
        container.register(b, build_b)

        with pytest.raises(CircularDependencyError) as exc_info:
            await container.resolve_async(a)
        assert exc_info.value.path == [a, b, a]

    @pytest.mark.asyncio
    async def test_concurrent_tasks_do_not_look_circular(self, container, token):
        transient = token("Transient")

        async def build(_resolver):
            await asyncio.sleep(0.01)
            return Service()

        container.register_transient(transient, build)

        results = await asyncio.gather(*(container.resolve_async(transient) for _ in range(3)))
        assert len({id(result) for result in results}) == 3


class TestCancellation:
    """Tests for cancellation tokens on resolve_async."""

    @pytest.mark.asyncio
    async def test_cancel_pending_factory(self, container, token, counter):
        service = token("Service")

        async def build(_resolver):
            if counter.increment() == 1:
                await asyncio.sleep(10)
            return Service()

        container.register(service, build)
        cancel = asyncio.Event()

        pending = asyncio.create_task(container.resolve_async(service, cancel))
        await asyncio.sleep(0.01)
        cancel.set()

        with pytest.raises(asyncio.CancelledError):
            await pending

        # Stack popped and creation lock released.
        assert current_resolution_path() == []
        resolved = await asyncio.wait_for(container.resolve_async(service), timeout=1.0)
        assert isinstance(resolved, Service)
        assert counter.value == 2

    @pytest.mark.asyncio
    async def test_already_cancelled_token(self, container, token, counter):
        service = token("Service")

        async def build(_resolver):
            counter.increment()
            return Service()

        container.register(service, build)
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(asyncio.CancelledError):
            await container.resolve_async(service, cancel)
        assert counter.value == 0

    @pytest.mark.asyncio
    async def test_token_propagates_to_nested_resolution(self, container, token, counter):
        outer = token("Outer")
        inner = token("Inner")
        inner_started = asyncio.Event()

        async def build_inner(_resolver):
            inner_started.set()
            await asyncio.sleep(10)
            return "inner"

        async def build_outer(resolver):
            return await resolver.resolve_async(inner)

        container.register(inner, build_inner)
        container.register(outer, build_outer)
        cancel = asyncio.Event()

        pending = asyncio.create_task(container.resolve_async(outer, cancel))
        await asyncio.wait_for(inner_started.wait(), timeout=1.0)
        cancel.set()

        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(pending, timeout=1.0)

    @pytest.mark.asyncio
    async def test_unset_token_does_not_interfere(self, container, token):
        service = token("Service")

        async def build(_resolver):
            await asyncio.sleep(0)
            return "ready"

        container.register(service, build)

        assert await container.resolve_async(service, asyncio.Event()) == "ready"
