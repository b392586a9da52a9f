"""Staff authentication"""
