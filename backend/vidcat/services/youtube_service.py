from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from typing import List, Optional, Dict, Any
import isodate
import structlog
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential
from vidcat.core.config import settings

logger = structlog.get_logger()

TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, HttpError) and getattr(exc.resp, "status", None) in TRANSIENT_STATUSES


_youtube_retry = retry(
    retry=retry_if_exception(_is_transient),
    stop=stop_after_attempt(settings.youtube_request_attempts),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def best_thumbnail(thumbnails: Dict[str, Any]) -> Optional[str]:
    for size in ('maxres', 'high', 'medium', 'default'):
        if thumbnails.get(size, {}).get('url'):
            return thumbnails[size]['url']
    return None


class YouTubeService:
    """Service for interacting with YouTube Data API v3"""
    
    def __init__(self, api_key: Optional[str] = None, client=None):
        self.api_key = api_key or settings.youtube_api_key
        self.youtube = client or build('youtube', 'v3', developerKey=self.api_key, cache_discovery=False)
    
    def _channel_dict(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'youtube_channel_id': item['id'],
            'name': item['snippet']['title'],
            'description': item['snippet'].get('description', ''),
            'thumbnail_url': item['snippet'].get('thumbnails', {}).get('high', {}).get('url'),
            'custom_url': item['snippet'].get('customUrl'),
            'uploads_playlist_id': item['contentDetails']['relatedPlaylists']['uploads']
        }
    
    @_youtube_retry
    def get_channel_info(self, channel_id: str) -> Optional[Dict[str, Any]]:
        """Fetch channel metadata by channel ID"""
        try:
            response = self.youtube.channels().list(
                part='snippet,contentDetails',
                id=channel_id
            ).execute()
            
            if not response.get('items'):
                return None
            
            return self._channel_dict(response['items'][0])
        except HttpError as e:
            logger.error("YouTube API error", error=str(e), channel_id=channel_id)
            raise
    
    @_youtube_retry
    def get_channel_by_handle(self, handle: str) -> Optional[Dict[str, Any]]:
        """Fetch channel by @handle"""
        try:
            # Remove @ if present
            handle = handle.lstrip('@')
            
            response = self.youtube.channels().list(
                part='snippet,contentDetails',
                forHandle=handle
            ).execute()
            
            if not response.get('items'):
                return None
            
            return self._channel_dict(response['items'][0])
        except HttpError as e:
            logger.error("YouTube API error", error=str(e), handle=handle)
            raise
    
    @_youtube_retry
    def _playlist_page(self, playlist_id: str, page_token: Optional[str], page_size: int) -> Dict[str, Any]:
        try:
            return self.youtube.playlistItems().list(
                part='snippet,contentDetails',
                playlistId=playlist_id,
                maxResults=page_size,
                pageToken=page_token
            ).execute()
        except HttpError as e:
            logger.error("YouTube API error", error=str(e), playlist_id=playlist_id)
            raise
    
    def get_playlist_items(
        self,
        playlist_id: str,
        max_items: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Page through a playlist and return the raw playlist items.
        
        Items are returned unvalidated; deleted or private entries are left
        for the caller to count as failures.
        """
        items: List[Dict[str, Any]] = []
        page_token = None
        page_size = min(50, settings.youtube_max_results_per_page)
        
        while True:
            response = self._playlist_page(playlist_id, page_token, page_size)
            items.extend(response.get('items', []))
            
            if max_items is not None and len(items) >= max_items:
                return items[:max_items]
            
            page_token = response.get('nextPageToken')
            if not page_token:
                break
        
        logger.info("Fetched playlist items", playlist_id=playlist_id, count=len(items))
        return items
    
    @_youtube_retry
    def get_video_details(self, video_ids: List[str]) -> List[Dict[str, Any]]:
        """Batch fetch video metadata (max 50 per request)"""
        try:
            videos = []
            
            # Process in batches of 50
            for i in range(0, len(video_ids), 50):
                batch = video_ids[i:i+50]
                
                response = self.youtube.videos().list(
                    part='snippet,contentDetails',
                    id=','.join(batch)
                ).execute()
                
                for item in response.get('items', []):
                    duration = isodate.parse_duration(item['contentDetails']['duration'])
                    
                    videos.append({
                        'youtube_id': item['id'],
                        'title': item['snippet']['title'],
                        'description': item['snippet'].get('description', ''),
                        'thumbnail': best_thumbnail(item['snippet'].get('thumbnails', {})),
                        'duration': int(duration.total_seconds()),
                    })
            
            return videos
        except HttpError as e:
            logger.error("YouTube API error", error=str(e), video_ids=video_ids[:5])
            raise


def get_youtube_service() -> YouTubeService:
    return YouTubeService()
