"""Notification, push subscription and preference routes"""
