"""Performance and stress tests for TalkLink components.

The time budgets below are generous; they guard against accidental
quadratic behaviour rather than benchmark a particular machine.
"""

import os
import threading
import time

import psutil

from talklink import KnowledgeIndex, RetrievalRanker
from talklink.keywords import extract_keywords


def build_index(temp_chat_store, entry_factory, chatbot_id, size):
    for i in range(size):
        temp_chat_store.insert_entry(
            entry_factory(
                chatbot_id,
                f"Question {i} about product {i % 37} shipping and billing?",
                f"Answer {i} covering warranty option {i % 11} in detail.",
            )
        )
    index = KnowledgeIndex(chatbot_id, temp_chat_store)
    index.load()
    return index


def test_keyword_extraction_performance():
    large_text = "Machine learning is transforming customer support today. " * 5000

    start_time = time.time()
    keywords = extract_keywords(large_text)
    extraction_time = time.time() - start_time

    assert keywords == frozenset({
        "machine",
        "learning",
        "transforming",
        "customer",
        "support",
        "today",
    })
    assert extraction_time < 0.5, f"Extraction took too long: {extraction_time:.3f}s"


def test_ranking_performance(temp_chat_store, entry_factory, chatbot):
    index = build_index(temp_chat_store, entry_factory, chatbot.id, 1000)
    ranker = RetrievalRanker()

    start_time = time.time()
    for i in range(20):
        result = ranker.rank(f"shipping question about product {i}", index)
        assert result.matched_entry is not None
    ranking_time = (time.time() - start_time) / 20

    assert ranking_time < 0.25, f"Ranking too slow: {ranking_time:.3f}s per query"


def test_index_load_performance(temp_chat_store, entry_factory, chatbot):
    build_index(temp_chat_store, entry_factory, chatbot.id, 1000)
    index = KnowledgeIndex(chatbot.id, temp_chat_store)

    start_time = time.time()
    index.load()
    load_time = time.time() - start_time

    assert len(index) == 1000
    assert load_time < 1.0, f"Index load too slow: {load_time:.3f}s"


def test_memory_usage_stability(temp_chat_store, entry_factory, chatbot):
    process = psutil.Process(os.getpid())
    index = build_index(temp_chat_store, entry_factory, chatbot.id, 500)
    ranker = RetrievalRanker()
    initial_memory = process.memory_info().rss / 1024 / 1024

    for round_num in range(5):
        for i in range(50):
            ranker.rank(f"billing question {round_num} {i}", index)
        index.load()

        current_memory = process.memory_info().rss / 1024 / 1024
        memory_growth = current_memory - initial_memory

        assert memory_growth < 20, f"Excessive memory growth: {memory_growth:.1f}MB"


def test_readers_during_concurrent_reload(temp_chat_store, entry_factory, chatbot):
    index = build_index(temp_chat_store, entry_factory, chatbot.id, 300)
    ranker = RetrievalRanker()
    errors = []
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            snapshot = index.all()
            if len(snapshot) != 300:
                errors.append(len(snapshot))
            ranker.rank("shipping product warranty", index)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    for _ in range(10):
        index.load()
    stop.set()
    for thread in threads:
        thread.join()

    assert errors == [], "Readers observed a partially loaded index"
