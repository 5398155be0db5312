"""Имена событий протокола WebSocket (поле "type" в JSON)."""

# Входящие от клиента
AUTH = "auth"
JOIN_QUEUE = "join_queue"
LEAVE_QUEUE = "leave_queue"
READY = "ready"
MAKE_MOVE = "make_move"
RESIGN = "resign"
OFFER_DRAW = "offer_draw"
DRAW_ACCEPTED = "draw_accepted"
DRAW_DECLINED = "draw_declined"

# Действия, которые маршрутизируются в партию
MATCH_ACTIONS = frozenset({READY, MAKE_MOVE, RESIGN, OFFER_DRAW, DRAW_ACCEPTED, DRAW_DECLINED})

# Исходящие клиенту
QUEUE_JOINED = "queue_joined"
QUEUE_LEFT = "queue_left"
QUEUE_COUNT = "queue_count"
MATCH_FOUND = "match_found"
YOUR_TURN = "your_turn"
OPPONENT_TURN = "opponent_turn"
MOVE_MADE = "move_made"
MOVE_REJECTED = "move_rejected"
DRAW_OFFERED = "draw_offered"
MATCH_OVER = "match_over"
ERROR = "error"

# Коды закрытия WebSocket
CLOSE_REPLACED = 4000
CLOSE_EXPECTED_AUTH = 4001
CLOSE_AUTH_FAILED = 4003
CLOSE_BACKLOG = 4008
