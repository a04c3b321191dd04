"""Account storage and administrator lifecycle services"""
