"""
JobConnect
Campus job board with AI-assisted transcript screening.

Architecture:
- SQL database (PostgreSQL, or SQLite for local runs): users, students, jobs, applications
- Uploads directory: student PDFs (ID, tax, bank, resume, academic transcript)
- Gemini / OpenAI-compatible model: transcript extraction only, run when a student applies
"""

__version__ = "1.0.0"
