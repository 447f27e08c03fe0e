import argparse
import asyncio
import logging

import streamlit as st

from vistamatch.agents import ClaudeAgent, GeminiAgent, OpenAIAgent
from vistamatch.agents.base import RecommendationAgent
from vistamatch.config import (
    PROVIDERS,
    auto_detect_provider,
    delete_api_key,
    get_api_key,
    load_settings,
    save_api_key,
    setup_logging,
)
from vistamatch.errors import VistaMatchError, NoDestinationsFoundError
from vistamatch.models import (
    BUDGET_OPTIONS,
    COMPANION_OPTIONS,
    DURATION_OPTIONS,
    TRAVEL_TYPE_OPTIONS,
    DestinationRecord,
    Language,
    ReviewDraft,
    UserPreferences,
)
from vistamatch.services import ImageResolutionManager, ImageResolver, TravelRecommender
from vistamatch.storage import DestinationStore

logger = logging.getLogger(__name__)


def parse_args():
    """Parse command-line arguments passed after -- in streamlit run."""
    parser = argparse.ArgumentParser(description="VistaMatch Travel")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Run in local mode: load API keys from keyring/environment",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode: save raw model responses",
    )
    # Filter out streamlit arguments and parse only our app arguments
    args, _ = parser.parse_known_args()
    return args


APP_ARGS = parse_args()
LOCAL_MODE = APP_ARGS.local
SETTINGS = load_settings(debug=True if APP_ARGS.debug else None)
setup_logging("DEBUG" if SETTINGS.debug else SETTINGS.log_level)

LANGUAGE_LABELS = {Language.ENGLISH: "English", Language.CHINESE: "简体中文"}

st.set_page_config(
    page_title="VistaMatch Travel",
    page_icon="🧭",
    layout="wide",
)


def lookup_api_key(provider: str) -> str:
    secrets = None if LOCAL_MODE else st.secrets
    return get_api_key(provider, local_mode=LOCAL_MODE, secrets=secrets)


def get_agent(provider: str, api_key: str, model: str) -> RecommendationAgent | None:
    """Create an agent for the selected provider."""
    debug_dir = SETTINGS.debug_dir if SETTINGS.debug else None
    try:
        if provider == "Gemini":
            return GeminiAgent(api_key, model=model, debug_dir=debug_dir)
        elif provider == "Claude":
            return ClaudeAgent(api_key, model=model, debug_dir=debug_dir)
        elif provider == "OpenAI":
            return OpenAIAgent(api_key, model=model, debug_dir=debug_dir)
    except Exception as e:
        st.error(f"Failed to initialize {provider} agent: {e}")
    return None


def init_session_state():
    """Initialize session state variables."""
    if "store" not in st.session_state:
        st.session_state.store = DestinationStore()
    if "images" not in st.session_state:
        st.session_state.images = ImageResolutionManager(resolver=None)
    if "language" not in st.session_state:
        st.session_state.language = SETTINGS.default_language
    if "preferences" not in st.session_state:
        st.session_state.preferences = UserPreferences()
    if "error" not in st.session_state:
        st.session_state.error = None
    if "provider" not in st.session_state:
        st.session_state.provider = (
            auto_detect_provider(LOCAL_MODE, None if LOCAL_MODE else st.secrets)
            or SETTINGS.provider
        )
    if "model" not in st.session_state:
        st.session_state.model = SETTINGS.model_for(st.session_state.provider)


def run_search(image: bytes, mime_type: str) -> None:
    """Run one search and record the outcome in session state."""
    provider = st.session_state.provider
    api_key = st.session_state.get(f"api_key_{provider}") or lookup_api_key(provider)
    agent = get_agent(provider, api_key, st.session_state.model)
    if agent is None:
        return

    recommender = TravelRecommender(agent, st.session_state.store)
    language = st.session_state.language
    st.session_state.error = None
    try:
        asyncio.run(
            recommender.submit_search(image, mime_type, st.session_state.preferences, language)
        )
    except VistaMatchError as e:
        st.session_state.error = e
    finally:
        store = st.session_state.store
        st.session_state.images.retain(
            d.id for d in store.current_results + store.saved_favorites
        )


def resolve_images(destinations: list[DestinationRecord]) -> None:
    """Resolve images for the destinations that are about to be shown."""

    async def _resolve():
        async with ImageResolver(
            timeout=SETTINGS.image_timeout, user_agent=SETTINGS.user_agent
        ) as resolver:
            st.session_state.images.resolver = resolver
            await st.session_state.images.resolve_all(destinations, st.session_state.language)

    asyncio.run(_resolve())


def render_sidebar():
    """Render provider, language and preference controls."""
    with st.sidebar:
        st.title("🧭 VistaMatch Travel")
        st.caption(f"Mode: {'Local' if LOCAL_MODE else 'Remote'}{' | Debug' if SETTINGS.debug else ''}")

        language = st.radio(
            "Language",
            list(LANGUAGE_LABELS),
            format_func=LANGUAGE_LABELS.get,
            index=list(LANGUAGE_LABELS).index(st.session_state.language),
            horizontal=True,
        )
        st.session_state.language = language

        st.markdown("---")
        st.subheader("Preferences")
        prefs = st.session_state.preferences
        st.session_state.preferences = UserPreferences(
            origin_location=st.text_input("Origin", value=prefs.origin_location),
            trip_duration=st.selectbox(
                "Trip Duration (days)", DURATION_OPTIONS, index=DURATION_OPTIONS.index(prefs.trip_duration)
            ),
            budget=st.selectbox("Budget", BUDGET_OPTIONS, index=BUDGET_OPTIONS.index(prefs.budget)),
            travel_type=st.selectbox(
                "Style", TRAVEL_TYPE_OPTIONS, index=TRAVEL_TYPE_OPTIONS.index(prefs.travel_type)
            ),
            companions=st.selectbox(
                "Companions", COMPANION_OPTIONS, index=COMPANION_OPTIONS.index(prefs.companions)
            ),
        )

        st.markdown("---")
        st.subheader("AI Provider")
        provider = st.selectbox(
            "Select AI Provider",
            PROVIDERS,
            index=PROVIDERS.index(st.session_state.provider),
        )
        models = SETTINGS.model_choices(provider)
        model = st.selectbox(
            "Select Model",
            models,
            index=models.index(SETTINGS.model_for(provider)),
            key=f"model_select_{provider}",
        )
        st.session_state.provider = provider
        st.session_state.model = model

        api_key = st.text_input(
            f"{provider} API Key",
            value=lookup_api_key(provider),
            type="password",
            key=f"api_key_{provider}",
        )
        if LOCAL_MODE:
            col1, col2 = st.columns(2)
            with col1:
                if st.button("💾 Save Key", width="stretch"):
                    if save_api_key(provider, api_key):
                        st.success("Key saved!")
                    else:
                        st.error("Failed to save")
            with col2:
                if st.button("🗑️ Delete", width="stretch"):
                    if delete_api_key(provider):
                        st.success("Key deleted!")
                        st.rerun()
        elif not api_key:
            st.warning(f"Enter an API key for {provider}")


def render_destination(destination: DestinationRecord, view: str):
    """Render one destination card with favorite and review controls."""
    image = st.session_state.images.state(destination.id)
    language = st.session_state.language
    store = st.session_state.store

    with st.container(border=True):
        if image.is_resolved:
            st.image(image.url, width="stretch")
        st.subheader(destination.name)
        if destination.english_name != destination.name:
            st.caption(destination.english_name)
        rating = destination.average_rating
        st.caption(f"📍 {destination.location} · ⭐ {rating if rating is not None else 'New'}")

        heart = "❤️" if destination.is_favorite else "🤍"
        if st.button(heart, key=f"fav_{view}_{destination.id}"):
            store.toggle_favorite(destination.id)
            st.rerun()

        st.markdown(f"**Why:** {destination.reason}")
        st.markdown(f"**Route:** {destination.route}")
        st.markdown(f"**Best Season:** {destination.season}")
        st.markdown(f"**Travel Tips:** {destination.tips}")
        with st.expander("View Detailed Itinerary"):
            st.markdown(destination.itinerary)
        st.markdown(f"[Maps]({destination.maps_url()})")
        st.code(destination.share_text(language), language=None)

        for review in destination.reviews[-2:]:
            st.markdown(f"{'⭐' * review.rating} **{review.author}**: {review.text}")
        if len(destination.reviews) > 2:
            st.caption(f"+{len(destination.reviews) - 2} more reviews")

        with st.form(key=f"review_{view}_{destination.id}", clear_on_submit=True):
            author = st.text_input("Your Name")
            rating = st.slider("Rating", 1, 5, 5)
            text = st.text_area("Share your experience...")
            if st.form_submit_button("Submit"):
                try:
                    store.add_review(destination.id, ReviewDraft(author=author, rating=rating, text=text))
                    st.rerun()
                except ValueError as e:
                    st.error(f"Review not saved: {e}")


def render_grid(destinations: list[DestinationRecord], view: str):
    resolve_images(destinations)
    cols = st.columns(2)
    for index, destination in enumerate(destinations):
        with cols[index % 2]:
            render_destination(destination, view)


def render_search():
    """Render the upload area and current recommendations."""
    uploaded = st.file_uploader("Upload a photo of a place you love", type=["jpg", "jpeg", "png", "webp"])
    if uploaded is not None and st.button("Find matches", type="primary"):
        with st.spinner("Analyzing your photo..."):
            run_search(uploaded.getvalue(), uploaded.type or "image/jpeg")

    error = st.session_state.error
    store = st.session_state.store
    if error is not None:
        st.error(error.user_message(st.session_state.language))
        if isinstance(error, NoDestinationsFoundError) and error.raw_text:
            with st.expander("Raw response"):
                st.markdown(error.raw_text)

    if store.current_results:
        st.header("Recommended Destinations")
        render_grid(store.current_results, "search")
        if store.grounding_links:
            st.subheader("Verified Sources")
            for link in store.grounding_links:
                st.markdown(f"- [{link.title}]({link.uri})")


def render_favorites():
    saved = st.session_state.store.saved_favorites
    if not saved:
        st.info("You haven't saved any destinations yet. Go find some places!")
        return
    render_grid(saved, "favorites")


def main():
    """Main application entry point."""
    init_session_state()
    render_sidebar()

    count = len(st.session_state.store.saved_favorites)
    tab1, tab2 = st.tabs(["🔍 Search", f"❤️ My Favorites ({count})"])

    with tab1:
        render_search()

    with tab2:
        render_favorites()


if __name__ == "__main__":
    main()
