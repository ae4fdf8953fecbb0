"""
Scheduler Service - Qualifying and Bracket Engine for Petanque Tournaments

Responsibilities:
- Qualifying round generation (Swiss, Swiss-Hotel, Round-Robin, Pool-Play)
- Court assignment and court history
- Standings and tiebreak ranking (Buchholz chain, point-quotient chain)
- Single-elimination brackets with byes and consolante brackets
- Score submission and winner propagation
"""
