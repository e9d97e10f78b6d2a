"""Prompt templates and canned answers."""

RAG_ANSWER_PROMPT = """You are a documentation assistant. Answer the question using only the context below.
If the context does not contain the answer, say that you don't know.

Context:
{context}

Question: {question}

Answer:"""

DEFAULT_NO_ANSWER = "I couldn't find anything in the indexed documents that answers this question."
