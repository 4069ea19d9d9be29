"""Markdown rendering of enhanced prompts."""

from .models import ContextBundle, ContextItem, SourceKind

CONSISTENCY_INSTRUCTIONS = (
    "Make your response consistent with the project's existing patterns and "
    "coding standards. Use the provided context to make sure the solution "
    "fits the existing codebase."
)

BARE_PROMPT_INSTRUCTIONS = (
    "The request above is brief. Before answering, restate the goal and the "
    "expected result, and ask for any missing constraints."
)


def format_doc(item: ContextItem) -> str:
    library = item.metadata.get("library") or item.origin
    library_id = item.metadata.get("library_id", item.origin)
    return f"### {library} (`{library_id}`)\n{item.text.strip()}"


def format_fact(item: ContextItem) -> str:
    return f"- {item.text.strip()}"


def format_snippet(item: ContextItem) -> str:
    file_path = item.metadata.get("file_path", item.origin)
    start = item.metadata.get("start_line", "?")
    end = item.metadata.get("end_line", "?")
    language = item.metadata.get("language", "")
    return (
        f"**`{file_path}:{start}-{end}`**\n"
        f"```{language}\n{item.text.rstrip()}\n```"
    )


def compose_enhanced_prompt(prompt: str, bundle: ContextBundle) -> str:
    """Append the bundle's context to the prompt as Markdown sections."""
    sections = [prompt.strip()]

    docs = bundle.by_kind(SourceKind.DOC)
    if docs:
        body = "\n\n".join(format_doc(item) for item in docs)
        sections.append(f"## Framework Documentation\n{body}")

    facts = bundle.by_kind(SourceKind.FACT)
    if facts:
        body = "\n".join(format_fact(item) for item in facts)
        sections.append(f"## Project Context\n{body}")

    snippets = bundle.by_kind(SourceKind.SNIPPET)
    if snippets:
        body = "\n\n".join(format_snippet(item) for item in snippets)
        sections.append(f"## Relevant Code\n{body}")

    if len(sections) > 1:
        sections.append(f"## Instructions\n{CONSISTENCY_INSTRUCTIONS}")

    return "\n\n".join(sections)


def wrap_bare_prompt(prompt: str) -> str:
    return f"## Task\n{prompt.strip()}\n\n## Instructions\n{BARE_PROMPT_INSTRUCTIONS}"
