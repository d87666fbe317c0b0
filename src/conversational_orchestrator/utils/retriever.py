"""
Prompt helpers for retrieval-grounded answers.
"""

from collections.abc import Sequence
from textwrap import dedent

from conversational_orchestrator.chunking.base import Chunk
from conversational_orchestrator.llms.base import LLM, LLMMessage, Roles

STANDALONE_SYSTEM_PROMPT = (
    "You rewrite follow-up questions so that they can be understood without the conversation they came from."
)

STANDALONE_TEMPLATE = dedent("""
    Rewrite the follow-up question below as a self-contained search query.

    - Replace pronouns and references to earlier messages ("it", "that one", "the second option")
      with the things they refer to in the conversation.
    - If the question already makes sense on its own, or has nothing to do with the conversation,
      return it unchanged.
    - Reply with the query only: no quotes, labels or explanations.

    Conversation:
    {conversation}

    Follow-up question: {query}
""")


def _render_history(history: Sequence[LLMMessage]) -> str:
    return "\n".join(f"{message.role.value.capitalize()}: {message.content}" for message in history)


async def make_query_standalone(llm: LLM, history: list[LLMMessage], query: str) -> str:
    """Ask 'llm' to resolve references in 'query' against 'history'; keep 'query' if the reply is empty."""
    conversation = [
        LLMMessage(role=Roles.SYSTEM, content=STANDALONE_SYSTEM_PROMPT),
        LLMMessage(
            role=Roles.USER,
            content=STANDALONE_TEMPLATE.format(conversation=_render_history(history), query=query),
        ),
    ]
    rewritten = (await llm.generate(conversation)).content.strip()
    return rewritten or query


def build_query_with_chunks(user_query: str, chunks: Sequence[Chunk] | None = None) -> str:
    """
    Wrap 'user_query' together with the retrieved passages for the chat model.

    Passages are numbered in rank order and tagged with the title of the file
    they come from, so the model can refer to them.
    """
    if chunks:
        sources = "\n".join(
            f'<source id="{number}" title="{chunk.title}">\n{chunk.content}\n</source>'
            for number, chunk in enumerate(chunks, start=1)
        )
    else:
        sources = "No sources found."
    return f"User Query: {user_query}\n\nHere are the sources I found for you:\n{sources}\n"
