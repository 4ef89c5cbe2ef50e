"""
AI Job Description Writer
Uses Google Gemini Flash to draft or polish teaching job descriptions
"""
import json
import logging
from typing import List, Optional, Union

import google.generativeai as genai

from hyrepro.core.config import settings
from hyrepro.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The model call failed or returned something unusable"""


class JobDescriptionWriter:
    """
    Drafts a job description from the job post form, or rewrites the one the
    admin already typed when `existing_job_description` is given
    """

    def __init__(self):
        self._model = None

    @property
    def model(self):
        if self._model is None:
            if not settings.GEMINI_API_KEY:
                logger.error("GEMINI_API_KEY is not configured")
                raise ConfigurationError("Gemini API key is not configured")
            genai.configure(api_key=settings.GEMINI_API_KEY)
            self._model = genai.GenerativeModel(
                model_name=settings.GEMINI_MODEL,
                generation_config={
                    "temperature": 0.7,
                    "top_p": 0.95,
                    "top_k": 40,
                    "max_output_tokens": 4096,
                }
            )
        return self._model

    def build_prompt(
        self,
        job_title: str,
        subjects: Union[str, List[str]],
        grade: str,
        employment_type: str,
        experience: str,
        board: str,
        school_type: str,
        school_name: str,
        salary_range: Optional[str] = None,
        existing_job_description: Optional[str] = None,
    ) -> str:
        if isinstance(subjects, list):
            subjects = ", ".join(subjects)

        task = "Write a job description for this teaching position."
        if existing_job_description:
            task = (
                "Improve the job description below: keep every fact, fix tone and structure.\n\n"
                f"CURRENT DESCRIPTION:\n{existing_job_description}"
            )

        return f"""You are an experienced school HR writer. {task}

POSITION:
Title: {job_title}
Subjects: {subjects}
Grade: {grade}
Employment Type: {employment_type}
Experience: {experience}
Salary: {salary_range or 'Not disclosed'}

SCHOOL:
Name: {school_name}
Board: {board}
Type: {school_type}

Respond in this exact JSON format (no markdown, just pure JSON):
{{
    "job_description": "<2-3 paragraph overview>",
    "responsibilities": ["responsibility1", "responsibility2"],
    "requirements": ["requirement1", "requirement2"]
}}"""

    def parse_response(self, response_text: str) -> dict:
        response_text = response_text.strip()

        # Remove markdown code blocks if present
        if response_text.startswith("```"):
            lines = response_text.split('\n')
            if lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            response_text = '\n'.join(lines)

        try:
            result = json.loads(response_text)
        except json.JSONDecodeError as e:
            raise GenerationError(f"Model returned invalid JSON: {e}") from e

        if not isinstance(result, dict) or not result.get("job_description"):
            raise GenerationError("Model response has no job_description")
        result.setdefault("responsibilities", [])
        result.setdefault("requirements", [])
        return result

    def generate(self, **fields) -> dict:
        prompt = self.build_prompt(**fields)
        try:
            response = self.model.generate_content(prompt)
            text = response.text
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error("Gemini generation failed: %s", e)
            raise GenerationError(str(e)) from e
        return self.parse_response(text)


job_description_writer = JobDescriptionWriter()
