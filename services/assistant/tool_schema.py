"""Schema definitions for the tools offered to the assistant on every run."""

from typing import Any, Dict, List

GENERATE_IMAGE = "generate_image"
GENERATE_CAREER_VISUALIZATION = "generate_career_visualization"

CAREER_FIELDS: List[str] = [
    "techniek",
    "zorg",
    "onderwijs",
    "economie",
    "ict",
    "creatief",
    "bouw",
    "horeca",
    "transport",
    "veiligheid",
    "groen",
    "sport",
]

GENERATE_IMAGE_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": GENERATE_IMAGE,
        "description": "Generate an image using DALL-E based on a text prompt",
        "parameters": {
            "type": "object",
            "properties": {
                "prompt": {
                    "type": "string",
                    "description": "Detailed description of the image to generate",
                },
            },
            "required": ["prompt"],
        },
    },
}

GENERATE_CAREER_VISUALIZATION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": GENERATE_CAREER_VISUALIZATION,
        "description": (
            "Show the student a picture of their 50-year-old future self working in the chosen "
            "career field, based on the photo they uploaded earlier in this conversation."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "careerField": {
                    "type": "string",
                    "description": "Career field the student picked.",
                    "enum": CAREER_FIELDS,
                },
                "specificRole": {
                    "type": "string",
                    "description": "Optional concrete job title within the field.",
                },
                "userMessage": {
                    "type": "string",
                    "description": "Short message shown to the student while the image is being made.",
                },
            },
            "required": ["careerField"],
        },
    },
}

RUN_TOOLS: List[Dict[str, Any]] = [
    {"type": "file_search"},
    {"type": "code_interpreter"},
    GENERATE_IMAGE_DEFINITION,
    GENERATE_CAREER_VISUALIZATION_DEFINITION,
]
