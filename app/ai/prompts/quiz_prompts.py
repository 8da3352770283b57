"""
Quiz Generation Prompts

System message and user prompt for AI quiz generation. The expected JSON
shape mirrors app.schemas.ai_quiz.AIQuizContent.
"""

QUIZ_GENERATION_SYSTEM_MESSAGE = """You are an expert educational assessment creator. Write a multiple-choice quiz on the topic the user gives you.
Return ONLY valid JSON (no markdown fences, no extra text) shaped as:
{"title": "...", "description": "...", "questions": [{"content": "...", "explanation": "...", "options": [{"content": "...", "is_correct": true}, ...]}]}
Rules: 5 to 10 questions; every question has exactly 4 options with exactly one correct; title at most 200 characters; description at most 500 characters."""


def build_quiz_generation_prompt(prompt: str) -> str:
    return f"Create a quiz about the following topic:\n\n{prompt.strip()}"
