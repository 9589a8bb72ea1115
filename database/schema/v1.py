"""Schema v1 - Initial database schema.

A single key-value table backs every marketplace entity. Keys follow the
`<entity>:<id>` and `<entity>:by-<relation>:<fk>:<id>` conventions of the
record store; values are JSONB documents (or a bare id string for pointer
records).
"""
from config import settings_conf

KV_TABLE = settings_conf['kv_table']

schema = {
    'version': 1,
    'tables': [
        {
            'name': KV_TABLE,
            'columns': [
                {'name': 'key', 'type': 'TEXT', 'primary_key': True},
                {'name': 'value', 'type': 'JSONB', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': f'idx_{KV_TABLE}_key_prefix', 'columns': ['key'], 'opclass': 'text_pattern_ops'},
                {'name': f'idx_{KV_TABLE}_updated', 'columns': ['updated_at']}
            ]
        }
    ]
}
