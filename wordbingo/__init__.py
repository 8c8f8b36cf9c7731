"""Real-time multiplayer word bingo: game rules, wire protocol and websocket transports."""
