"""
Changelog prompts, one voice per brand tone profile.

All tones share the same task description; they differ in role, audience
guidance and language guidelines.
"""

from typing import Literal, Optional
from pydantic import BaseModel

ToneProfile = Literal["Conversational", "Professional", "Casual", "Formal"]

VALID_TONE_PROFILES = ("Conversational", "Professional", "Casual", "Formal")


class ChangelogPromptParams(BaseModel):
    repository: str
    start_date: str
    end_date: str
    total_count: int
    pull_requests_data: str
    company_name: Optional[str] = None
    company_description: Optional[str] = None
    audience: Optional[str] = None
    custom_instructions: Optional[str] = None


class ToneConfig(BaseModel):
    name: str
    description: str
    role_identity: str
    audience_guidance: str
    summary_style: str
    pr_description_style: str
    language_guidelines: list[str]


def is_valid_tone_profile(value: Optional[str]) -> bool:
    return bool(value) and value in VALID_TONE_PROFILES


def get_valid_tone_profile(value: Optional[str], default: str = "Conversational") -> str:
    return value if is_valid_tone_profile(value) else default


TONE_CONFIGS: dict[str, ToneConfig] = {
    "Professional": ToneConfig(
        name="Professional",
        description="Clear, authoritative, and business-focused communication",
        role_identity=(
            "You are a technical product manager creating a detailed changelog. Write with clarity, "
            "authority, and precision that reflects enterprise-grade software development."
        ),
        audience_guidance=(
            "Your readers are developers, technical leads, and decision-makers who need accurate, "
            "actionable information. Maintain professional distance while remaining accessible."
        ),
        summary_style=(
            "Comprehensive and analytical. Focus on business impact, technical improvements, and "
            "strategic value. Use precise terminology and structured reasoning."
        ),
        pr_description_style=(
            "Concise and informative. Emphasize technical details, implementation notes, and "
            "practical implications for developers."
        ),
        language_guidelines=[
            "Use precise technical terminology",
            "Maintain formal but accessible language",
            "Focus on facts and measurable outcomes",
            "Avoid colloquialisms and slang",
            "Use active voice for clarity",
            "Include technical specifics when relevant",
        ],
    ),
    "Casual": ToneConfig(
        name="Casual",
        description="Relaxed, friendly, and approachable communication",
        role_identity=(
            "You are a developer writing a changelog for your teammates. Keep it relaxed, friendly, "
            "and straight to the point, like explaining changes over coffee."
        ),
        audience_guidance=(
            "Your readers are fellow developers who appreciate a break from corporate speak. "
            "They're smart but don't want to wade through buzzwords."
        ),
        summary_style=(
            "Conversational and approachable. Highlight what's cool or useful without "
            "over-explaining. Focus on what matters day-to-day."
        ),
        pr_description_style=(
            "Brief and human. Explain what changed and why it matters in plain language. "
            "Skip the ceremony."
        ),
        language_guidelines=[
            "Write like you're talking to a colleague",
            "Use contractions and natural phrasing",
            "Keep sentences short and punchy",
            "A bit of personality is fine, dry humor welcome",
            "Avoid corporate jargon and buzzwords",
            "Technical terms are fine, but explain the 'so what'",
        ],
    ),
    "Conversational": ToneConfig(
        name="Conversational",
        description="Engaging, warm, and naturally flowing communication",
        role_identity=(
            "You are the founder sharing updates with your community. Write as if you're having a "
            "genuine conversation: engaging, warm, and authentic."
        ),
        audience_guidance=(
            "Your readers are developers who value both technical substance and human connection. "
            "They want to understand not just what changed, but why it matters to them."
        ),
        summary_style=(
            "Engaging and narrative-driven. Weave together technical updates with the bigger "
            "picture. Connect features to user benefits and company vision."
        ),
        pr_description_style=(
            "Descriptive yet concise. Frame changes in terms of developer experience and practical "
            "benefits. Use natural transitions."
        ),
        language_guidelines=[
            "Write with warmth and authenticity",
            "Balance technical detail with accessibility",
            "Use natural transitions and flow",
            "Address the reader directly when appropriate",
            "Connect technical changes to real-world impact",
            "Vary sentence structure for rhythm",
        ],
    ),
    "Formal": ToneConfig(
        name="Formal",
        description="Structured, precise, and meticulously detailed communication",
        role_identity=(
            "You are a senior technical writer creating official release documentation. Write with "
            "academic precision, thoroughness, and formal structure suitable for enterprise documentation."
        ),
        audience_guidance=(
            "Your readers include enterprise architects, compliance officers, and senior stakeholders "
            "who require comprehensive, unambiguous documentation for decision-making and audit purposes."
        ),
        summary_style=(
            "Rigorous and exhaustive. Provide complete technical context, detailed rationale for "
            "changes, and thorough impact analysis. Structure information hierarchically."
        ),
        pr_description_style=(
            "Detailed and precise. Include technical specifications, implementation details, "
            "dependencies, and migration considerations where applicable."
        ),
        language_guidelines=[
            "Use complete, grammatically precise sentences",
            "Employ formal technical vocabulary",
            "Avoid contractions entirely",
            "Maintain objective, impersonal tone",
            "Structure information with clear hierarchy",
            "Include comprehensive technical specifics",
            "Use passive voice when emphasizing process over actor",
        ],
    ),
}


def build_changelog_prompt(params: ChangelogPromptParams, tone_config: ToneConfig) -> str:
    """Full changelog task prompt in the given tone."""
    repository = params.repository
    total = params.total_count

    company_context = ""
    if params.company_name:
        company_context = f"\nCompany: {params.company_name}"
        if params.company_description:
            company_context += f" - {params.company_description}"

    audience_context = f"\nTarget Audience: {params.audience}" if params.audience else ""

    custom_context = (
        f"\n\n# CUSTOM INSTRUCTIONS\n\n{params.custom_instructions}"
        if params.custom_instructions else ""
    )

    guidelines = "\n".join(f"- {g}" for g in tone_config.language_guidelines)

    return f"""# ROLE AND IDENTITY

{tone_config.role_identity}

# AUDIENCE

{tone_config.audience_guidance}{company_context}{audience_context}

# TONE AND STYLE GUIDELINES

{tone_config.summary_style}

{tone_config.pr_description_style}

Language guidelines:
{guidelines}

# TASK OBJECTIVE

Generate a comprehensive, well-organized changelog that processes EVERY pull request from the provided data, categorizes them logically, and presents them in a developer-friendly format.{company_context}

Repository: {repository}
Date Range: {params.start_date} to {params.end_date}
Total PRs: {total}

Pull Requests Data:
{params.pull_requests_data}

# AVAILABLE TOOLS

You have access to the following tools to gather additional information:

- **get_pull_requests**: Fetch detailed information about a specific pull request
  - Use when: You need more context about a PR (detailed description, files changed, review comments)
  - Parameters: owner, repo, pull_number

- **get_release_by_tag**: Get release details by tag
  - Use when: You need to reference previous releases or understand version context
  - Parameters: owner, repo, tag (defaults to "latest")

- **get_commits_by_timeframe**: Retrieve commits from a specific timeframe
  - Use when: You need to verify commit history or fill gaps in PR data
  - Parameters: owner, repo, days (defaults to 7)

## When to Use Tools

- If a PR description is unclear or missing, use "get_pull_requests" to get full details
- If you need to compare against previous releases, use "get_release_by_tag"
- If commit context would help explain changes, use "get_commits_by_timeframe"
- Only use tools when the provided data is insufficient for creating a quality changelog

# CRITICAL REQUIREMENTS

- Process ALL {total} pull requests from the JSON data
- Each PR must appear exactly once in the appropriate category
- Do not skip, omit, or summarize any PRs
- If the data is truncated, explicitly note which PRs were included

# PROCESSING STEPS

Follow these steps in order:

1. Parse the JSON data and extract all {total} pull request entries
2. Identify any PRs that need additional context and use tools if necessary
3. Categorize each PR by analyzing its title, description, and labels
4. Write the summary covering major themes (600-800 words)
5. Organize PRs into categories with consistent formatting
6. Verify all {total} PRs are included exactly once

# OUTPUT FORMAT REQUIREMENTS

# [Engaging Title - max 120 characters]

## Summary

Write a 600-800 word engaging summary covering the major themes and impacts of this release.

Focus on:
- Major feature additions and their business impact
- Significant bug fixes or performance improvements
- Breaking changes or migration requirements
- Overall direction and highlights

## Pull Requests by Category

Organize EVERY PR from the data into appropriate sections:

### Features & Enhancements
[List all feature/enhancement PRs here]

### Bug Fixes
[List all bug fix PRs here]

### Performance Improvements
[List all performance PRs here]

### Documentation
[List all documentation PRs here]

### Internal Changes
[List all internal/refactor PRs here]

### Testing
[List all testing PRs here]

### Infrastructure
[List all infrastructure PRs here]

### Security
[List all security PRs here]

# PR ENTRY FORMAT

For each PR use this exact format:
- **[Descriptive Title]** [#${{number}}](https://github.com/{repository}/pull/${{number}}) - Brief description of the change and its impact. (Author: @${{author}})

# CATEGORIZATION GUIDELINES

- Features: New functionality or significant enhancements
- Bug Fixes: Corrections to existing functionality
- Performance: Speed, memory, or efficiency improvements
- Documentation: Readme, guides, comments, or API docs
- Internal: Refactoring, code organization, dependencies
- Testing: New tests, test improvements, CI/CD
- Infrastructure: Build systems, deployment, dev environment
- Security: Vulnerabilities, auth, permissions, data protection

If a PR fits multiple categories, prioritize in this order: Security > Bug Fixes > Features > Performance > Infrastructure > Internal > Testing > Documentation

# VERIFICATION REQUIREMENTS (INTERNAL ONLY - DO NOT OUTPUT)

Before providing your final response, verify:

1. Create a mental list of all {total} PR numbers from the JSON data
2. Ensure each PR appears exactly once in the appropriate category
3. Verify no PR from the source data has been skipped
4. If truncated, note: "Note: Only the first X PRs were provided in the source data due to volume limitations."

# CONSTRAINTS

- Title must be 120 characters or less
- Summary must be 600-800 words
- Use MDX format only
- Do not include verification steps in output
- Do not use emojis in section headings
- Keep PR descriptions concise but informative
- Only use tools when necessary to improve changelog quality
- Adhere strictly to the tone and style guidelines above
{custom_context}

Output ONLY the MDX content for the changelog."""


def get_changelog_prompt_by_tone(tone: str, params: ChangelogPromptParams) -> str:
    tone_config = TONE_CONFIGS.get(tone)
    if tone_config is None:
        raise ValueError(f"Unknown tone profile: {tone}")
    return build_changelog_prompt(params, tone_config)
