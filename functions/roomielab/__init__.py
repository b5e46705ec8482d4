"""
RoomieLab backend package.

A FastAPI service over Firestore and Firebase Auth for the RoomieLab AR
furniture app: user profiles, a furniture catalog, favorites, projects and
AR designs. Every request body passes the validation and sanitization
pipeline in ``roomielab.validators`` before it reaches the store.
"""
