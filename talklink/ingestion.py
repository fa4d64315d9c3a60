"""Seeding a tenant's knowledge base from plain text."""

from __future__ import annotations

import re
from pathlib import Path

from .config import config
from .keywords import extract_keywords
from .models import KnowledgeEntry, new_id

logger = config.get_logger(__name__)

MIN_SENTENCE_LENGTH = 10

_SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


class KnowledgeIngestor:
    """Turns free text into question/answer knowledge entries."""

    @staticmethod
    def load_txt(file_path: Path) -> str:
        """Load text content from a TXT file.

        Returns:
            The text content of the file.

        Raises:
            ValueError: If the file is not a ``.txt`` file.
        """
        if file_path.suffix.lower() != ".txt":
            msg = f"Unsupported file type: {file_path.suffix.lower()}"
            raise ValueError(msg)
        try:
            with file_path.open(encoding="utf-8") as file:
                text = file.read()
            logger.info("Loaded knowledge text from %s", file_path.name)
        except Exception:
            logger.exception("Error loading TXT %s", file_path)
            raise
        else:
            return text

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        """Split text on sentence terminators, keeping meaningful sentences.

        Returns:
            Stripped sentences longer than ``MIN_SENTENCE_LENGTH`` characters.
        """
        return [
            sentence.strip()
            for sentence in _SENTENCE_BOUNDARY.split(text)
            if len(sentence.strip()) > MIN_SENTENCE_LENGTH
        ]

    def entries_from_text(
        self,
        chatbot_id: str,
        text: str,
        source: str = "text",
    ) -> list[KnowledgeEntry]:
        """Build one entry per sentence, answering with the sentence itself.

        Sentences without any keyword are skipped.

        Returns:
            Entries ready to be written to the datastore.
        """
        entries = []
        for position, sentence in enumerate(self.split_sentences(text)):
            keywords = extract_keywords(sentence)
            if not keywords:
                continue
            entries.append(
                KnowledgeEntry(
                    id=new_id(),
                    chatbot_id=chatbot_id,
                    question=sentence,
                    answer=sentence,
                    keywords=keywords,
                    metadata={"source": source, "position": position},
                )
            )

        logger.info("Text from %s produced %d knowledge entries", source, len(entries))
        return entries
