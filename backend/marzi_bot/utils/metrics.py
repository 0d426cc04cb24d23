# /marzi_bot/utils/metrics.py

from prometheus_client import Counter

# All Prometheus metrics used by the service, exposed at /metrics.

# Conversation Metrics
conversation_turns_counter = Counter('conversation_turns_total', 'Conversation turns processed', ['variant', 'status'])
flow_step_resets_counter = Counter('flow_step_resets_total', 'Stored steps missing from the active flow')
escalations_counter = Counter('escalations_total', 'Escalations created', ['reason'])
registrations_counter = Counter('registrations_total', 'Users registered by the bot')

# Performance Metrics
flow_cache_operations = Counter('flow_cache_operations_total', 'Flow cache operations', ['status'])
database_operations_counter = Counter('database_operations_total', 'Database operations', ['operation', 'status'])
