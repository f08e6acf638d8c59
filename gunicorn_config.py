import multiprocessing

# Gunicorn Production Configuration
# Each request may block on the retail backend, so keep threads per worker
workers = multiprocessing.cpu_count() * 2 + 1
threads = 4
worker_class = 'gthread'

# Backend calls time out after API_TIMEOUT (10s); leave headroom for a
# checkout that also fetches the receipt and reloads the catalog.
timeout = 60
max_requests = 1000
max_requests_jitter = 100
keepalive = 5

# Logging
accesslog = '-'       # Stdout
errorlog = '-'        # Stderr
loglevel = 'info'
capture_output = True
