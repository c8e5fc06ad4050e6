"""Bot message templates and generation system instructions."""

from integrations.trends import TrendCategory

HELP_MESSAGE = """🤖 *3D Social Arch Bot*

*Organizer:*
📝 */task [text]* - Add a task
📌 */note [text]* - Add a note
📋 */list* - Show tasks
✅ */done [number]* - Complete a task (number from /list)

*Tools:*
💡 */idea* - Generate a content idea
🔍 */trends [audio|formats|plots]* - Scan trends
📡 */status* - Server status
❓ */help* - Show this menu
"""

# Replies
TASK_ADDED = "✅ *Task added:* {text}"
TASK_USAGE = "⚠️ Write the task text: `/task Buy clay`"
NOTE_ADDED = "📌 *Note saved.*"
NOTE_USAGE = "⚠️ Write the note text: `/note Try a new HDRI`"
TASK_DONE = '👍 Task "{text}" completed!'
INVALID_NUMBER = "❌ Invalid task number. Use /list to see the numbers."
SAVE_FAILED = "⚠️ Could not save that right now. Please try again."
SCANNING_TRENDS = "🔍 *Scanning trends...*"
GENERATING_IDEA = "💡 *Generating an idea...*"
IDEA = "💎 *Content idea:*\n\n{idea}"
IDEA_FAILED = "⚠️ Idea generation is unavailable right now."
STATUS = """✅ *Server healthy*
⏱ Uptime: {uptime}
📋 Tasks: {active} active, {done} done
🤖 Bot token: {bot}
🧠 Generation ({source}): {generation}"""

IDEA_SYSTEM_INSTRUCTION = "You are a Creative Director for a 3D artist."
IDEA_PROMPT = (
    "Generate ONE unique content idea for a 3D Artist (Blender/Maya). "
    "Output ONLY the idea. Language: {language}"
)

TREND_JSON_INSTRUCTION = (
    "Output requirements: Return ONLY the raw JSON array inside a ```json block. "
    'Structure: [{ "platform": "Instagram", "trendName": "...", "description": "...", '
    '"hypeReason": "...", "growthMetric": "...", "vibe": "..." }]'
)

TREND_SCANS = {
    TrendCategory.GENERAL: (
        "You are a trend analyst for 3D artists on social media.",
        "Find latest 3D Art trends.",
    ),
    TrendCategory.AUDIO: (
        "You track viral audio used in art and tech short-form video.",
        "Trending audio and songs on TikTok and Instagram Reels for art/tech this week.",
    ),
    TrendCategory.FORMATS: (
        "You track viral video editing formats for creators.",
        "Viral video editing formats and templates for 3D artists Instagram TikTok.",
    ),
    TrendCategory.PLOTS: (
        "You track hashtags and satisfying video concepts.",
        "Trending hashtags and satisfying video concepts for 3D rendering.",
    ),
}


def get_trend_prompt(category: TrendCategory) -> tuple[str, str]:
    """Return (system_instruction, prompt) for a trend scan."""
    system_instruction, query = TREND_SCANS[category]
    return system_instruction, f"{query}\n{TREND_JSON_INSTRUCTION}"
