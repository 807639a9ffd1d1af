"""
Contact Services

Spam protection, storage, mail delivery and the submission pipeline that
ties them together.
"""
