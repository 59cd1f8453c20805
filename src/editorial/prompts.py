"""Prompt templates for the research and draft providers."""

RESEARCH_SYSTEM_PROMPT = (
    "You are a meticulous research assistant. Provide comprehensive,"
    " evidence-based information drawn from trusted sources, and cite"
    " every source you use."
)

_RESEARCH_TEMPLATE = """\
Research prompt: Comprehensive analysis of {title}

Conduct in-depth research on "{title}", focusing exclusively on information
from highly trusted sources such as:
- Peer-reviewed academic research
- Books by the originator(s) or recognized authorities
- Official websites or documentation
- Respected industry publications and journals
- Case studies from reputable organizations

Organize your findings using the structure below. Each bullet may include
several explanatory sentences or short paragraphs. Omit bullets that are not
relevant to the topic.

1. Overview
   - 2-3 sentence summary of the topic
   - Origin: when, where and by whom it was developed
   - Current prominence and adoption
2. Who It Is For
   - Ideal audiences and contexts
3. The Problem It Solves
   - Primary challenges it addresses
4. Key Concepts and Components
   - Fundamental elements and terminology
   - How the parts fit together
   - What distinguishes it from alternatives
5. How It Works in Practice
   - Real-world application and common adaptations
6. Strengths and Benefits
   - Evidence-based advantages and documented outcomes
7. Limitations and Criticism
   - Known drawbacks and scenarios where it is not a good fit
8. Related Approaches
   - Compatible or competing approaches and common combinations
9. Tools and Resources
   - Apps, books, websites and communities, with URLs where available
10. Notable Stories
   - Case studies, anecdotes and quotable moments, with sources
11. SEO Keyword Suggestions
   - Primary keyword(s) for a blog post about "{title}"
   - Long-tail variants and related questions readers search for

Cite all sources used, including direct links where available. Include only
information that can be verified from trusted sources, and note any
contradictions or areas of debate. If information for a section is limited,
say so rather than speculating. Avoid exaggerated claims from marketing
materials. Aim for at least 3000 words in markdown. Include only the final
report, not your thinking.
"""

_DRAFT_SYSTEM_TEMPLATE = """\
You are a clear, engaging writer and an encouraging mentor for readers who
want to understand "{title}". Write a 1800-2500 word SEO-optimized blog post
about "{title}" based on the research provided.

Writing style:
- Friendly, knowledgeable tone like a well-informed coach
- Clear, confident and accessible; avoid jargon
- Light encouragement without hype
- Assume readers are curious but undecided
- Use descriptive subheadings, bullet points and bold for key concepts

Include:
1. A 40-60 word definition paragraph early in the introduction
2. The primary keyword in the title, tagline, introduction and 3-5 times throughout
3. Footnote citations referencing the source material
4. A FAQ section answering the questions readers most often ask
"""

_DRAFT_USER_TEMPLATE = """\
Your task is to write a 1800-2500 word blog post based on the structured
research report below about "{title}".

Structure:
1. Title: "What is {title}? A practical guide"
2. Tagline: one compelling sentence shown beneath the title
3. Introduction (no header): a relatable hook, a 40-60 word definition, and
   why the topic is worth exploring
4. "The Problem {title} Solves"
5. "How {title} Works"
6. "Who Should Use {title}?"
7. "Benefits and Limitations of {title}"
8. "Getting Started with {title}"
9. "Frequently Asked Questions About {title}" (3-5 questions, 2-4 sentences each)

Format requirements:
- Markdown with bullet points and bold for key concepts
- Footnote citations referencing the source material
- Use the "SEO Keyword Suggestions" from the research naturally; do not
  keyword-stuff

Output ONLY the blog post itself. No preamble and no meta-commentary.

SOURCE MATERIAL STARTS BELOW
{research}
SOURCE MATERIAL ENDS"""


def research_prompt(title: str) -> str:
    return _RESEARCH_TEMPLATE.format(title=title)


def draft_system_prompt(title: str) -> str:
    return _DRAFT_SYSTEM_TEMPLATE.format(title=title)


def draft_user_prompt(title: str, research: str) -> str:
    """Embed the research between the source-material markers."""
    return _DRAFT_USER_TEMPLATE.format(title=title, research=research)
