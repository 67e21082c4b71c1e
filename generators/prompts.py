"""Prompt templates for report and content-gap generation.

Templates are str.format() strings; literal JSON braces are doubled.
"""

# ---------------------------------------------------------------------------
# Compliance constraints every generated plan must satisfy
# ---------------------------------------------------------------------------

FORBIDDEN_PHRASES = [
    "guaranteed approval",
    "lowest rate in the country",
    "guaranteed loan",
    "zero risk",
]

MANDATORY_DISCLOSURES = [
    'Every statement about interest rates must carry the note "subject to individual credit conditions".',
    "The plan must explain the difference in legal protection between bank second mortgages "
    "and second mortgages arranged through private lenders or agents.",
]


def compliance_constraints() -> str:
    lines = [f"{i}. {rule}" for i, rule in enumerate(MANDATORY_DISCLOSURES, 1)]
    forbidden = ", ".join(f'"{p}"' for p in FORBIDDEN_PHRASES)
    lines.append(f"{len(lines) + 1}. Never use exaggerated claims such as {forbidden}.")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Planning report
# ---------------------------------------------------------------------------

REPORT_PROMPT = """\
You are a senior SEO content planner specialising in consumer finance. The current date is {current_date}.
Combine the two sources below into a complete SEO article plan for the keyword "{keyword}".

## Source 1: external SERP competitive analysis
{analysis_text}

## Source 2: internal compliance manual (relevant passages)
{grounding_text}

## Hard compliance constraints (must be followed)
{constraints}

## Your task
Return the plan as a JSON object with exactly these fields:

{{
  "title": "Suggested H1 title containing the main keyword without stuffing it",
  "outline": [
    {{
      "heading": "H2 section title",
      "description": "What the section must cover (2-3 sentences)",
      "source": "serp_gap or compliance or seo_strategy"
    }}
  ],
  "contentStrategy": "How the plan balances search intent against the compliance requirements",
  "complianceNotes": ["compliance checklist items"],
  "riskWarnings": ["risk warnings the article must include"],
  "disclaimer": "Closing disclaimer"
}}

## Planning principles
1. Content gaps first: plan at least 2 sections that cover gaps identified in the SERP analysis.
2. YMYL compliance: every rate figure needs a source; never use the forbidden phrases above.
3. E-E-A-T: at least one outline section must have source "compliance".
4. Search intent: title and structure must answer what searchers actually want.
5. Timeliness: it is {current_date}; use {current_year} as the reference year, never outdated years.

Return JSON only, with no extra commentary."""


# ---------------------------------------------------------------------------
# Content-gap analysis
# ---------------------------------------------------------------------------

GAP_PROMPT = """\
You are a senior SEO content strategist specialising in consumer finance and real estate. The current date is {current_date}.

Below are the top {competitor_count} competitors on the search results page:

{serp_summary}

## Your task
Find 5 content gaps: questions searchers genuinely care about that these competitors do not answer well.

Requirements:
1. Start from searcher intent.
2. Give each gap a priority: high (high demand, low competition), medium (promising), low (long tail).
3. Explain why it is a gap.
4. Do not repeat topics the competitors already cover.

Return a JSON object (the outer value must be an object, not an array):
{{
  "gaps": [
    {{
      "topic": "Gap topic, at most 20 words",
      "reasoning": "Why this is a gap, at most 50 words",
      "priority": "high or medium or low"
    }}
  ]
}}

Return clean JSON only."""
