"""Prompt and tool-output text used by the run loop and the image tools."""

from __future__ import annotations

from typing import Optional

TARGET_AGE = 50

UPLOAD_TURN_TEXT = "I uploaded an image. Please analyze it and tell me what you see."

TURN_APOLOGY = "Sorry, I encountered an error. Please try again."


def career_image_prompt(career_field: str, specific_role: Optional[str] = None) -> str:
	"""Return the image prompt for a future-self career portrait."""
	role = specific_role.strip() if specific_role and specific_role.strip() else None
	job = f"a {role} in the field of {career_field}" if role else f"a professional in the field of {career_field}"
	return (
		f"A realistic, warm portrait of this person aged to about {TARGET_AGE} years old, working as {job}. "
		"Keep the face recognisable, show natural ageing (some grey hair, fine lines), "
		"and place them in a typical workplace for this job with fitting clothing and tools. "
		"Friendly, confident expression; photographic style; no text in the image."
	)


def career_description(career_field: str, specific_role: Optional[str] = None) -> str:
	"""Return the short description returned alongside a career image."""
	suffix = f" as {specific_role}" if specific_role else ""
	return f"Aged to {TARGET_AGE} years old working in {career_field}{suffix} - your future career self!"


def career_memo_text(career_field: str, specific_role: Optional[str], image_url: str) -> str:
	"""Return the memo text replayed when the career tool is requested again."""
	suffix = f" as {specific_role}" if specific_role else ""
	return f"Career visualization generated successfully for {career_field}{suffix}. Image URL: {image_url}"


def future_self_instruction() -> str:
	"""Return the tool output that steers the assistant into the future-self persona."""
	return (
		"SUCCESS: Career visualization completed and shown to student. "
		"NOW IMMEDIATELY PROCEED TO STEP 5: Switch to the role of their 50-year-old future self. "
		'Say: "Ik ben jouw 50-jarige zelf. Je hebt keuzes gemaakt die goed bij je pasten. '
		'Je mag me alles vragen over hoe ik hier gekomen ben." '
		'Then ask "Wat wil jij aan mij vragen?" Do this NOW in your next response.'
	)


def career_image_message(subject: str, image_url: str) -> str:
	"""Return the chat message that shows the career image to the student."""
	return f"Hier is jouw toekomst als {subject}! 👨‍💼👩‍💼\n\n[Your Career Future]({image_url})"
