"""
CLI Application Logic

Provides an interactive command-line interface for the Codebase Memory system.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from core import CodebaseMemory, Settings
from core.errors import CodebaseMemoryError
from core.utils.response_formatter import format_response_text

logger = logging.getLogger(__name__)

COMMANDS = "🧰 tools, 🔧 call, 📊 stats, 🗂️ entries, 📈 evolution, 🧹 cleanup, 🔄 refresh, 💡 recommend, 🔍 context, 👋 exit"


def parse_arguments(raw: str) -> Dict[str, Any]:
    """Parse the JSON object typed after a tool name (empty input means no arguments)."""
    if not raw:
        return {}
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("Tool arguments must be a JSON object")
    return value


async def interactive_session(system: CodebaseMemory) -> None:
    """
    Run an interactive command loop against the codebase memory system.

    Args:
        system: Ready CodebaseMemory instance
    """
    logger.info("\n%s", "=" * 70)
    logger.info("💬 INTERACTIVE CODEBASE MEMORY")
    logger.info("%s", "=" * 70)
    logger.info("Commands: %s\n", COMMANDS)

    while True:
        try:
            step = input(f"🔄 Step ({COMMANDS}): ").strip().lower()

            if step == "tools":
                for tool in system.list_tools():
                    logger.info("🧰 %s - %s", tool["name"], tool["description"])
                continue

            if step == "call":
                name = input("🔧 Tool name: ").strip()
                raw = input("📝 Arguments as JSON (or press Enter for defaults): ").strip()
                result = await system.call_tool(name, parse_arguments(raw))
                logger.info("\n\n💡 %s", format_response_text(result))
                continue

            if step == "stats":
                logger.info("\n📊 Memory Stats:\n%s", format_response_text(system.memory_stats()))
                continue

            if step == "entries":
                type_ = input("🏷️ Entry type (or press Enter for all): ").strip() or None
                entries = system.query_memory(type=type_, limit=10)
                logger.info("\n🗂️ Latest Entries:\n%s", format_response_text(entries))
                continue

            if step == "evolution":
                timespan = input("📅 Timespan (or press Enter for '30d'): ").strip() or "30d"
                logger.info("\n📈 Evolution:\n%s", format_response_text(system.analyze_evolution(timespan)))
                continue

            if step == "cleanup":
                days = int(input("🧹 Remove entries older than how many days? ").strip())
                removed = await system.cleanup_memory(datetime.now(timezone.utc) - timedelta(days=days))
                logger.info("✅ Removed %d entries.", removed)
                continue

            if step == "refresh":
                context = await system.refresh_context()
                logger.info("✅ Context refreshed: %s (%s)", context.architecture, context.language)
                continue

            if step == "recommend":
                recommendations = await system.get_contextual_recommendations()
                logger.info("\n💡 Recommendations:\n%s", format_response_text(recommendations))
                continue

            if step == "context":
                path = input("📄 File path: ").strip()
                logger.info("\n🔍 File Context:\n%s", format_response_text(await system.analyze_code_context(path)))
                continue

            if step == "exit":
                logger.info("\n👋 Goodbye!")
                break

            logger.warning("❓ Unknown command: %s", step)
        except KeyboardInterrupt:
            logger.info("\n👋 Goodbye!")
            break
        except (CodebaseMemoryError, ValueError) as e:
            logger.error("❌ %s", e)


async def run_cli(
    project_root: Optional[str] = None,
    memory_dir: Optional[str] = None,
    interactive: bool = True,
) -> CodebaseMemory:
    """
    Run the CLI application.

    Args:
        project_root: Project to analyze (defaults to CODEBASE_MEMORY_PROJECT_ROOT or the working directory)
        memory_dir: Memory directory (defaults to CODEBASE_MEMORY_DIR or <project>/.mcp-memory)
        interactive: Whether to start the interactive session

    Returns:
        The CodebaseMemory instance
    """
    logger.info("=" * 70)
    logger.info("🚀 CODEBASE MEMORY CLI")
    logger.info("=" * 70)

    logger.info("⚙️  Initializing system...")
    system = CodebaseMemory.from_settings(Settings.from_env(project_root, memory_dir))

    if interactive:
        await interactive_session(system)

    return system


async def main() -> None:
    """Default CLI entry point with standard configuration."""
    await run_cli(interactive=True)
