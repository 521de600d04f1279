#!/usr/bin/env python3
"""
Match Prompt Builders - Tier-specific prompts for semantic job matching.

Free and premium users get structurally separate prompts; both ask the
model for the same ``{"matches": [...]}`` response contract so one parser
handles either tier.
"""
from typing import List
import logging

from matching.models import Job, UserPreferences
from matching.llm.system_prompts import MATCH_RESPONSE_CONTRACT, SCORE_BREAKDOWN_FIELDS

logger = logging.getLogger(__name__)

DESCRIPTION_PREVIEW_FREE = 200
DESCRIPTION_PREVIEW_PREMIUM = 600


def _truncate(text: str, limit: int) -> str:
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def _job_location(job: Job) -> str:
    return job.location or ", ".join(p for p in (job.city, job.country) if p) or "Unknown"


class FreeMatchPromptBuilder:
    """Compact prompt for free-tier users: core profile and short job summaries."""

    @staticmethod
    def build_prompt(user: UserPreferences, jobs: List[Job]) -> str:
        cities = ", ".join(user.target_cities) or "Any"
        level = user.entry_level_preference or "entry-level"

        job_lines = []
        for index, job in enumerate(jobs):
            job_lines.append(
                f"[{index}] {job.title or 'Unknown Position'} @ {job.company or 'Unknown Company'} "
                f"| {_job_location(job)}\n"
                f"    {_truncate(job.description, DESCRIPTION_PREVIEW_FREE)}"
            )

        return (
            "### USER PROFILE\n"
            f"- Experience Level: {level}\n"
            f"- Target Locations: {cities}\n"
            f"- Career Keywords: {user.career_keywords or 'none specified'}\n"
            "\n"
            "### AVAILABLE JOBS\n"
            + "\n".join(job_lines) + "\n"
            "\n"
            "### TASK\n"
            "Score how well each job fits this user. Only include jobs that are a reasonable match.\n"
            "\n"
            + MATCH_RESPONSE_CONTRACT % {'breakdown': ""}
        )


class PremiumMatchPromptBuilder:
    """Detailed prompt for premium users, requesting a per-factor score breakdown."""

    @staticmethod
    def build_prompt(user: UserPreferences, jobs: List[Job]) -> str:
        cities = ", ".join(user.target_cities) or "Any"
        paths = ", ".join(user.career_path) or "Not specified"
        level = user.entry_level_preference or "entry-level"

        job_blocks = []
        for index, job in enumerate(jobs):
            categories = ", ".join(job.categories) or "uncategorised"
            posted = job.posted_at.date().isoformat() if job.posted_at else "unknown"
            job_blocks.append(
                f"[{index}] {job.title or 'Unknown Position'} @ {job.company or 'Unknown Company'}\n"
                f"    Location: {_job_location(job)}\n"
                f"    Experience: {job.experience_required or 'not stated'}\n"
                f"    Categories: {categories}\n"
                f"    Posted: {posted}\n"
                f"    Description: {_truncate(job.description, DESCRIPTION_PREVIEW_PREMIUM)}"
            )

        return (
            "### USER PROFILE (PREMIUM)\n"
            f"- Experience Level: {level}\n"
            f"- Target Locations: {cities}\n"
            f"- Career Paths: {paths}\n"
            f"- Career Keywords: {user.career_keywords or 'none specified'}\n"
            "\n"
            "### AVAILABLE JOBS\n"
            + "\n".join(job_blocks) + "\n"
            "\n"
            "### SCORING GUIDE\n"
            "- 90-100: direct hit on skills, location and career path.\n"
            "- 75-89: strong fit with one minor gap.\n"
            "- 60-74: relevant but with clear gaps.\n"
            "- below 60: weak fit; include only if nothing better exists.\n"
            "Balance results across the user's career paths and locations where possible.\n"
            "Break every score down into skills, company, experience and location.\n"
            "\n"
            + MATCH_RESPONSE_CONTRACT % {'breakdown': SCORE_BREAKDOWN_FIELDS}
        )


def build_match_prompt(user: UserPreferences, jobs: List[Job]) -> str:
    """Pick the prompt builder for the user's subscription tier."""
    if user.is_premium:
        return PremiumMatchPromptBuilder.build_prompt(user, jobs)
    return FreeMatchPromptBuilder.build_prompt(user, jobs)
