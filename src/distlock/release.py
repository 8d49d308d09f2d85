"""
Compare-and-delete release protocol.

The script below is a frozen wire contract: it compares the stored value
with the caller's token using plain string equality and deletes the key
only on a match, all inside one server-side evaluation. A client-side
GET followed by DEL is never safe: the key can expire and be re-acquired
by another client between the two commands.

Any change to the script's semantics must bump RELEASE_SCRIPT_VERSION.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .store import LockStore

RELEASE_SCRIPT_VERSION = 1

RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


def release(store: "LockStore", key: str, token: str) -> bool:
    """
    Delete key only if it still holds token.

    Returns:
        True if the key was present with a matching token and was removed
        False if the key had expired or belongs to another holder
    """
    return store.compare_and_delete(key, token)
