"""
Services Layer

Pure bracket engine services that:
- Accept domain inputs (match lists, formats, best-of settings)
- Return domain outputs (new match lists, resolved slots, standings)
- Do NOT depend on HTTP request/response objects or a storage medium
- Do NOT mutate their inputs; every change returns a new list
"""
