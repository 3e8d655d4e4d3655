"""store/ -- Relational persistence for EduTech.

Schema and constraints (schema.py), the generic SQL execution interface
(database.py), typed entities and row mappers (models.py, mappers.py), and
first-run seeding (seed.py).

Layer rule: store/ imports only stdlib, third-party libraries, and core/.
seed.py is the one exception: it also uses auth/passwords.py and audit/ to
create the default admin.
"""
