# Routes package init
"""
Emuji Backend: API Routes Package
====================================

Route Inventory:
    - health.py:  GET  /health            (service health check)
    - emujis.py:  GET  /                  (latest emujis)
                  GET  /{spotify_uri}     (song for a track)
                  POST /                  (vote submission)

Routes are thin: extract request data, call the service, shape the response.
"""
