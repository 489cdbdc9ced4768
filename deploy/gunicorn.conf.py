# Gunicorn configuration
# A single worker process: the nightly scheduler and the background sync
# threads live inside it. Concurrency comes from threads.
bind = "127.0.0.1:8000"
workers = 1
worker_class = "gthread"
threads = 4
timeout = 120
keepalive = 5
errorlog = "/var/log/cf-tracker/gunicorn-error.log"
accesslog = "/var/log/cf-tracker/gunicorn-access.log"
loglevel = "info"
