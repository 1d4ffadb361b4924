# prompts/summary.py
import json

from .base import CORE_PRINCIPLES, NOT_DOCUMENTED, SOAP_KEYS

OUTPUT_SKELETON = {
    "summary": "Brief medical summary of the note content",
    "soap": {
        "subjective": "Patient-reported symptoms and concerns",
        "objective": "Observable findings and measurements",
        "assessment": "Clinical assessment and diagnosis",
        "plan": "Treatment plan and follow-up recommendations",
    },
}


def generate_prompt(text: str, note_type: str = "TEXT") -> str:
    """Build the user prompt asking for a summary plus SOAP breakdown of ``text``."""
    skeleton = json.dumps(OUTPUT_SKELETON, indent=2)
    soap_keys = ", ".join(SOAP_KEYS)
    return f"""Please analyze the following clinical note and provide:
1. A concise medical summary
2. A SOAP format breakdown
{CORE_PRINCIPLES}
Note Type: {note_type}
Note Content: "{text}"

Please respond with a JSON object in this exact format:
{skeleton}

The "soap" object must contain exactly the keys {soap_keys}.
If any SOAP section is not applicable, use "{NOT_DOCUMENTED}" as the value.
"""
