"""
dispatch_console.realtime

Realtime infrastructure (Socket.IO).

Responsibilities:
- Session store and room membership.
- Broadcast routing table and fan-out.
- Socket.IO server construction and handler registration.
"""
