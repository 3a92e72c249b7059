# Chat protocol constants (event tags, separators, fixed replies)

# Inbound event tags as they appear after the first pipe of a protocol line.
TAG_CHAT = "c"
TAG_CHAT_TS = "c:"
TAG_JOIN = "j"
TAG_JOIN_QUIET = "J"
TAG_POPUP = "popup"
TAG_PM = "pm"

# Session setup tags, consumed by the transport and never dispatched.
TAG_CHALLSTR = "challstr"
TAG_UPDATEUSER = "updateuser"

# Outbound actions.
ACT_ROOMBAN = "roomban"
ACT_ROOMUNBAN = "roomunban"
ACT_JOIN = "join"
ACT_PM = "pm"
ACT_USERAUTH = "userauth"
ACT_TRN = "trn"

# Rank prefixes of senders whose chat lines are only checked against the
# blacklist, never parsed as commands.
UNPRIVILEGED_RANKS = (" ", "+", "%")

# Popup lines are joined with this separator.
POPUP_SEPARATOR = "||||"
ROOM_AUTH_PREFIX = "Room auth: "
ROOM_AUTH_SEPARATOR = ", "

# User-facing text.
REPLY_BANNED = "Blacklisted"
REPLY_UNBANNED = "Unbanned"
REPLY_NOT_BANNED = "The user wasn't blacklisted?"
BAN_REASON = "Blacklisted"

PM_REPLY_LINES = (
    "Hi, I'm a temporary replacement supporting only blacklisting "
    "(ab and unab commands) for Usain Bot until blacklists will be "
    "implemented on Showdown. For room help, try asking room auth.",
    "Old Usain Bot features were moved to Showdown code proper, "
    "use /roomsettings as a room owner to manage these.",
)

DEFAULT_ROOMS = ("joim",)
DEFAULT_SERVER_URL = "wss://sim3.psim.us/showdown/websocket"
DEFAULT_LOGIN_URL = "https://play.pokemonshowdown.com/~~showdown/action.php"
