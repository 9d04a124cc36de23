"""
База знаний магазина.

Этот модуль содержит:
- service: KnowledgeService, кэшированный документ знаний для промпта LLM
- routes: админские эндпоинты /knowledge
- seed: базовые знания магазина
"""
