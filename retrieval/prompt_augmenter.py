"""
Prompt Augmenter

Deterministic merge of retrieved context and the user's question.
No randomness, no truncation: the context is already bounded upstream.
"""

CONTEXT_PREAMBLE = "You are answering a question using data retrieved from a database. Context follows."
CONTEXT_SEPARATOR = "---"
CLOSING_INSTRUCTION = (
    "Answer using only the context above. If the answer is not supported by the "
    "provided context, say so explicitly instead of guessing."
)


def augment(user_prompt: str, context: str) -> str:
    """
    Build the provider-ready prompt.

    Layout: preamble, context verbatim, separator, the question, closing instruction.
    """
    return "\n\n".join(
        [
            CONTEXT_PREAMBLE,
            context,
            CONTEXT_SEPARATOR,
            f"Question: {user_prompt}",
            CLOSING_INSTRUCTION,
        ]
    )
