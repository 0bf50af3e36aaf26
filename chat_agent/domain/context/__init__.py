# This package assembles what the model sees on every call.
#
# +---------------------+        +---------------------+
# |   SessionStore      |        |   ResponseCache     |
# |---------------------|        |---------------------|
# | last 20 messages    |        | fingerprint -> reply|
# | idle expiry (30m)   |        | TTL per category    |
# +---------------------+        +---------------------+
#            \                             /
#             \                           /
#              v                         v
# +------------------------------------------------+
# |                 ContextManager                 |
# |------------------------------------------------|
# | system instruction + current time              |
# | last 10 prior turns (tool exchanges intact)    |
# | new user message                               |
# +------------------------------------------------+
#                        |
#                        v
#               [LLM / tool calls]
