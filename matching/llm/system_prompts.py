SEMANTIC_MATCHING_SYSTEM_PROMPT = (
    "You are an expert career counselor helping match job seekers with perfect job "
    "opportunities. Analyze job matches based on skills, experience, location "
    "preferences, and career goals. Respond with JSON only."
)

MATCH_RESPONSE_CONTRACT = """
Return ONLY a JSON object of this exact shape (no prose, no markdown):
{
  "matches": [
    {
      "jobIndex": <integer index of the job as listed above>,
      "matchScore": <integer 0-100>,
      "confidenceScore": <integer 0-100>,
      "matchReason": "<one or two sentences>"%(breakdown)s
    }
  ]
}
""".strip()

SCORE_BREAKDOWN_FIELDS = """,
      "scoreBreakdown": {
        "skills": <0-100>,
        "company": <0-100>,
        "experience": <0-100>,
        "location": <0-100>
      }"""
