"""
                        Services Module

Business logic for ordering and the kitchen:
    - order_status: status transitions and tracking values
    - orders / restaurants: persistence-backed CRUD
    - placement: customer-side order submission with retries
    - performance / achievements / leaderboard: chef gamification
    - notifications: customer WhatsApp updates (Mock / Twilio)
"""
