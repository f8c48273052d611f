"""Core services: vector store, repositories, chat orchestration, tool bridges."""
