"""Shared constants for the MindFlow backend."""

PLAN_AGENT_NAME = "MindFlow Study Planner"

PLAN_AGENT_INSTRUCTIONS = (
    "You are MindFlow, a study companion focused on mental wellness and personalised learning. "
    "Turn the student's task dump into a compassionate, time-boxed study plan. "
    "Break large tasks into focus blocks of at most 25 minutes, add a 5 minute break after every two tasks, "
    "and keep the total scheduled time (tasks plus breaks) within the hours the student has available. "
    "Label every task with a difficulty of easy, medium or hard, a focus framing and a short study tip that "
    "addresses the student's reported challenges. Schedule demanding work when the student says their energy peaks. "
    "Respond only with JSON matching the provided schema; do not wrap it in prose or Markdown."
)

WELLNESS_TIPS: tuple[str, ...] = (
    "The Pomodoro Technique: Study for 25 minutes, break for 5. It works!",
    "Hydration helps focus. Drink water every hour.",
    "Natural light improves mood and concentration. Study near a window if possible.",
    "Movement is medicine. A 10-minute walk boosts cognitive function.",
    "Sleep > Cramming. Your brain consolidates learning during sleep.",
    "Deep breathing for 2 minutes reduces anxiety and improves focus.",
    "Background music without lyrics can enhance concentration for some people.",
    "Teach what you learn to solidify understanding.",
    "Take breaks BEFORE you feel exhausted, not after.",
    "Your brain works better when you are kind to yourself. Self-compassion matters.",
    "Spaced repetition is key to long-term retention.",
    "Eliminate distractions: silence notifications during study sessions.",
    "Study in the same location each day to build habit cues.",
    "Active recall is more effective than passive reading.",
    "Interleave different topics to improve learning transfer.",
)
