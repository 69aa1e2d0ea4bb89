"""Server-side Lua scripts for queue segment moves.

Producers LPUSH onto the head of ``main``, so the tail holds the oldest item.
``processing`` is kept oldest-first (head = oldest claimed).
"""

# KEYS[1] = main, KEYS[2] = processing
# ARGV[1] = max items to claim
# Returns {processing length before the claim, {claimed items oldest-first}}
CLAIM_BATCH = """
local n = tonumber(ARGV[1])
if n == nil or n <= 0 then
  return {0, {}}
end
local items = redis.call('LRANGE', KEYS[1], -n, -1)
if #items == 0 then
  return {redis.call('LLEN', KEYS[2]), {}}
end
redis.call('LTRIM', KEYS[1], 0, -(#items + 1))
local start = redis.call('LLEN', KEYS[2])
local claimed = {}
for i = #items, 1, -1 do
  redis.call('RPUSH', KEYS[2], items[i])
  claimed[#claimed + 1] = items[i]
end
return {start, claimed}
"""

# KEYS[1] = main, KEYS[2] = processing
# Puts every processing item back on the oldest end of main, order preserved.
RECOVER_ORPHANS = """
local items = redis.call('LRANGE', KEYS[2], 0, -1)
if #items == 0 then
  return 0
end
for i = #items, 1, -1 do
  redis.call('RPUSH', KEYS[1], items[i])
end
redis.call('DEL', KEYS[2])
return #items
"""

# KEYS[1] = processing, KEYS[2] = destination list
# ARGV[1] = claimed position, ARGV[2] = stored item, ARGV[3] = payload to push,
# ARGV[4] = destination cap (0 = uncapped), ARGV[5] = unique tombstone
# Removes exactly one processing item: by position when it still holds the
# stored item, otherwise the first exact copy of the stored string.
FORWARD_CLAIMED = """
local removed = 0
local pos = tonumber(ARGV[1])
local current = redis.call('LINDEX', KEYS[1], pos)
if current == ARGV[2] then
  redis.call('LSET', KEYS[1], pos, ARGV[5])
  removed = redis.call('LREM', KEYS[1], 1, ARGV[5])
else
  removed = redis.call('LREM', KEYS[1], 1, ARGV[2])
end
redis.call('LPUSH', KEYS[2], ARGV[3])
local cap = tonumber(ARGV[4])
if cap > 0 then
  redis.call('LTRIM', KEYS[2], 0, cap - 1)
end
return removed
"""

# KEYS[1] = dead_letter, KEYS[2] = main
# ARGV[1] = n, ARGV[2..n+1] = expected oldest entries (oldest first),
# ARGV[n+2..2n+1] = events to push back on main
# Stops at the first entry that no longer matches the tail.
REPLAY_DEAD_LETTERS = """
local n = tonumber(ARGV[1])
local moved = 0
for i = 1, n do
  local tail = redis.call('LINDEX', KEYS[1], -1)
  if tail ~= ARGV[1 + i] then
    return moved
  end
  redis.call('RPOP', KEYS[1])
  redis.call('LPUSH', KEYS[2], ARGV[1 + n + i])
  moved = moved + 1
end
return moved
"""
