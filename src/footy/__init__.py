"""Bookings and balanced team generation for five-a-side games."""
