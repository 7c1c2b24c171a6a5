"""Simple example showing a dependency-aware pipeline run."""

import asyncio
import random

from assetflow import Pipeline, RetryPolicy
from assetflow.log import configure_logging


async def extract() -> bool:
    await asyncio.sleep(0.1)
    return True


async def images() -> bool:
    await asyncio.sleep(0.2)
    return True


async def database() -> bool:
    # flaky on purpose to show retries
    if random.random() < 0.5:
        raise RuntimeError("database export locked")
    return True


async def package() -> bool:
    return True


async def main():
    """Register four steps and run them with two workers."""
    configure_logging("INFO")

    pipeline = Pipeline(
        retry_policy=RetryPolicy.exponential(base_delay=0.2, max_delay=1),
        max_concurrency=2,
    )
    pipeline.register_step("extract", extract, description="Unpack the export")
    pipeline.register_step("images", images, dependencies=["extract"])
    pipeline.register_step(
        "database", database, dependencies=["extract"], retryable=True, max_retries=3
    )
    pipeline.register_step("package", package, dependencies=["images", "database"])

    success = await pipeline.execute_all()

    print(f"Pipeline {'succeeded' if success else 'failed'}")
    for name, state in pipeline.get_state().items():
        print(f"  {name}: {state.status} (retries: {state.retry_count})")
    print(pipeline.get_summary())


if __name__ == "__main__":
    asyncio.run(main())
