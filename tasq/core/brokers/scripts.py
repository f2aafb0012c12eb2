# tasq/core/brokers/scripts.py
"""Lua scripts implementing atomic task registration.

Each script checks for the task hash and writes it together with the queue
index entry in one step. Redis does not roll back a script that fails
midway, so the index entry is written first: if it fails (e.g. WRONGTYPE on
the index key) nothing is left behind, and the HSET on a key just proven
absent cannot fail. Both return 1 when the task was registered and 0 when the
id already existed.
"""

# KEYS[1] -> asynq:{<qname>}:t:<task_id>
# KEYS[2] -> asynq:{<qname>}:pending
# --
# ARGV[1] -> encoded task message
# ARGV[2] -> task id
# ARGV[3] -> current Unix time in nsec
ENQUEUE_SCRIPT = """
if redis.call("EXISTS", KEYS[1]) == 1 then
    return 0
end
redis.call("LPUSH", KEYS[2], ARGV[2])
redis.call("HSET", KEYS[1],
           "msg", ARGV[1],
           "state", "pending",
           "pending_since", ARGV[3])
return 1
"""

# KEYS[1] -> asynq:{<qname>}:t:<task_id>
# KEYS[2] -> asynq:{<qname>}:scheduled
# --
# ARGV[1] -> encoded task message
# ARGV[2] -> process_at time in Unix time
# ARGV[3] -> task id
SCHEDULE_SCRIPT = """
if redis.call("EXISTS", KEYS[1]) == 1 then
    return 0
end
redis.call("ZADD", KEYS[2], ARGV[2], ARGV[3])
redis.call("HSET", KEYS[1],
           "msg", ARGV[1],
           "state", "scheduled")
return 1
"""
