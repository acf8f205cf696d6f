"""
Service worker for the installable web app

Served from the site root so its scope covers every page.
"""
from fastapi import APIRouter
from fastapi.responses import Response

router = APIRouter(tags=["PWA"])

CACHE_NAME = "loyalty-app-v1"

SERVICE_WORKER_JS = """
const CACHE_NAME = '%(cache_name)s';
const OFFLINE_URL = '/offline.html';

const OFFLINE_PAGE = `<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>Offline</title>
  <style>
    body { font-family: system-ui, sans-serif; display: flex; align-items: center;
           justify-content: center; min-height: 100vh; margin: 0; background: #f9fafb; color: #111827; }
    main { text-align: center; padding: 2rem; }
    button { margin-top: 1rem; padding: .6rem 1.2rem; border: 0; border-radius: .5rem;
             background: #2563eb; color: #fff; cursor: pointer; }
  </style>
</head>
<body>
  <main>
    <h1>You're offline</h1>
    <p>Check your connection and try again.</p>
    <button onclick="location.reload()">Retry</button>
  </main>
</body>
</html>`;

self.addEventListener('install', (event) => {
  event.waitUntil(
    caches.open(CACHE_NAME).then((cache) =>
      cache.put(OFFLINE_URL, new Response(OFFLINE_PAGE, { headers: { 'Content-Type': 'text/html' } }))
    )
  );
  self.skipWaiting();
});

self.addEventListener('activate', (event) => {
  event.waitUntil(
    caches.keys()
      .then((keys) => Promise.all(keys.filter((key) => key !== CACHE_NAME).map((key) => caches.delete(key))))
      .then(() => self.clients.claim())
  );
});

self.addEventListener('fetch', (event) => {
  const request = event.request;
  if (request.method !== 'GET') {
    return;
  }

  event.respondWith(
    fetch(request)
      .then((response) => {
        if (response.ok && new URL(request.url).origin === self.location.origin) {
          const copy = response.clone();
          caches.open(CACHE_NAME).then((cache) => cache.put(request, copy));
        }
        return response;
      })
      .catch(async () => {
        const cached = await caches.match(request);
        if (cached) {
          return cached;
        }
        if (request.mode === 'navigate' || request.destination === 'document') {
          return caches.match(OFFLINE_URL);
        }
        return new Response('', { status: 503, statusText: 'Offline' });
      })
  );
});
""" % {"cache_name": CACHE_NAME}


@router.get("/sw.js", include_in_schema=False)
async def service_worker():
    return Response(
        content=SERVICE_WORKER_JS,
        media_type="application/javascript",
        headers={
            "Cache-Control": "public, max-age=3600",
            "Service-Worker-Allowed": "/",
        }
    )
