"""Event names carried in ``{"event": ..., "data": ...}`` chat frames."""

# Client -> server
JOIN_ROOM = "joinRoom"
SEND_MESSAGE = "sendMessage"
TYPING = "typing"

# Server -> client
AUTH_ERROR = "authError"
ROOM_JOINED = "roomJoined"
ERROR_JOINING_ROOM = "errorJoiningRoom"
RECEIVE_MESSAGE = "receiveMessage"
MESSAGE_ERROR = "messageError"
USER_TYPING = "userTyping"
