"""Learn patterns from a few n8n-style workflows and print what was learned."""

import asyncio

from dotenv import load_dotenv

from workflow_patterns import (
    PatternLearningConfig,
    PerformanceMetrics,
    create_pattern_learning_manager,
    get_logger,
)

# Load environment variables (PATTERN_* tuning knobs)
load_dotenv()

logger = get_logger("learn_patterns")


def chain(name: str, node_types: list) -> dict:
    """Workflow whose nodes run one after another."""
    nodes = [
        {"id": str(i), "name": f"{t.rsplit('.', 1)[-1]} {i}", "type": t, "parameters": {}}
        for i, t in enumerate(node_types)
    ]
    connections = {
        str(i): {"main": [[{"node": str(i + 1), "type": "main", "index": 0}]]}
        for i in range(len(node_types) - 1)
    }
    return {"name": name, "nodes": nodes, "connections": connections}


WORKFLOWS = [
    chain("Daily report", [
        "n8n-nodes-base.scheduleTrigger",
        "n8n-nodes-base.httpRequest",
        "n8n-nodes-base.set",
        "n8n-nodes-base.slack",
    ]),
    chain("Support triage", [
        "n8n-nodes-base.webhook",
        "@n8n/n8n-nodes-langchain.openAi",
        "n8n-nodes-base.slack",
    ]),
    chain("Daily report (copy)", [
        "n8n-nodes-base.scheduleTrigger",
        "n8n-nodes-base.httpRequest",
        "n8n-nodes-base.set",
        "n8n-nodes-base.slack",
    ]),
]


async def main():
    """Learn from every workflow, then show the catalog and some suggestions."""
    manager = create_pattern_learning_manager(PatternLearningConfig.from_env())

    async with manager:
        for workflow in WORKFLOWS:
            result = await manager.learn_from_workflow(
                workflow, PerformanceMetrics(success_rate=0.95, avg_execution_time=850.0)
            )
            logger.info(
                f"{workflow['name']}: novelty={result.novelty_score:.2f} "
                f"complexity={result.complexity_score:.2f}"
            )

        print("\nTop patterns:")
        for pattern in manager.get_top_patterns(5):
            print(
                f"  {pattern.name} [{pattern.category.value}] "
                f"used {pattern.usage.times_used}x, confidence {pattern.confidence:.2f}"
            )

        print("\nSuggestions for 'Daily report':")
        for suggestion in manager.get_pattern_recommendations(WORKFLOWS[0]):
            print(f"  - {suggestion}")

        print(f"\nMetrics: {manager.get_learning_metrics()['outcomes']}")


if __name__ == "__main__":
    asyncio.run(main())
