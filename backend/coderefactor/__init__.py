"""CodeRefactor API: LLM-backed code refactoring service"""
