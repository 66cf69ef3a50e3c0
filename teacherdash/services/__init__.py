"""
TeacherDash Services
====================

Business logic for the TeacherDash API.

Services:
- task_helpers: natural-language dates, fuzzy class lookup, week math
- coverage: standards coverage and gap detection
- ai_service: AI providers, retry policy, JSON cleanup
- context_engine: planning context for prompts
- bellringer_generator / lesson_plan_generator / lesson_plan_importer
- standards_tagger / material_generator / calendar_importer
- export_service / email_service / subdash_generator / display_helpers
- standards_library: bundled standards, parsing pasted standards, saving by code
"""

# Services are imported directly when needed to avoid circular imports
# Example: from teacherdash.services.coverage import compute_coverage

__all__ = [
    'task_helpers',
    'coverage',
    'ai_service',
    'context_engine',
    'bellringer_generator',
    'lesson_plan_generator',
    'lesson_plan_importer',
    'standards_tagger',
    'material_generator',
    'calendar_importer',
    'export_service',
    'email_service',
    'subdash_generator',
    'display_helpers',
    'standards_library',
]
