"""
Streamlit front end.

Holds one GymBuddyApp per browser session in st.session_state and draws its
StageView on every rerun.

Usage:
    streamlit run src/ui.py
"""

from datetime import datetime

import streamlit as st

from app import GymBuddyApp, StageView
from client import friendly_error_message
from conversation import Message, Role, SubmitFailure
from stage_machine import Stage

AVATARS = {Role.USER: "🧑", Role.ASSISTANT: "💪", Role.SYSTEM: "⚠️"}


def initialize_session_state():
    if "gym_app" not in st.session_state:
        gym_app = GymBuddyApp()
        gym_app.start()
        st.session_state.gym_app = gym_app
    if "confirm_edit" not in st.session_state:
        st.session_state.confirm_edit = False


def render_welcome(gym_app: GymBuddyApp, view: StageView):
    for line in view.body:
        st.write(line)
    if st.button("Get Started", type="primary"):
        gym_app.begin_onboarding()
        st.rerun()


def render_onboarding(gym_app: GymBuddyApp, view: StageView):
    progress = view.progress
    st.progress(progress.percent / 100, text=f"Question {progress.current_number} of {progress.total}")

    question = view.question
    if question is None:
        return

    if progress.current_index == 0:
        name = st.text_input("Your name (optional)", value=gym_app.profile.profile.name)
    else:
        name = None

    with st.form(f"question_{question.id}"):
        st.subheader(question.prompt)
        if question.is_multi_select:
            default = list(view.selected) if isinstance(view.selected, tuple) else []
            answer = st.multiselect("Select all that apply", question.options, default=default)
        else:
            index = question.options.index(view.selected) if view.selected in question.options else None
            answer = st.radio("Choose one", question.options, index=index)

        back_col, next_col = st.columns(2)
        back = back_col.form_submit_button("Previous", disabled=not view.can_go_back)
        submitted = next_col.form_submit_button("Next", type="primary")

    if back:
        gym_app.previous_question()
        st.rerun()

    if submitted:
        if name:
            gym_app.set_name(name)
        result = gym_app.submit_answer(answer)
        if not result:
            st.error(result.error)
        else:
            st.rerun()


def render_summary(gym_app: GymBuddyApp, view: StageView):
    for line in view.body:
        label, _, value = line.partition(": ")
        st.markdown(f"**{label}:** {value}" if value else line)

    edit_col, chat_col = st.columns(2)
    if edit_col.button("Edit Profile", disabled=not view.can_go_back):
        gym_app.back_to_onboarding()
        st.rerun()
    if chat_col.button("Start Chatting", type="primary"):
        gym_app.start_chat()
        st.rerun()


def render_message(message: Message, html: str):
    with st.chat_message(message.role.value, avatar=AVATARS[message.role]):
        # markup comes from StageView.rendered_messages, which escapes message text
        st.markdown(html, unsafe_allow_html=True)
        st.caption(message.timestamp.strftime("%H:%M"))


def render_chat(gym_app: GymBuddyApp, view: StageView):
    for line in view.body:
        st.caption(line)

    for message, html in view.rendered_messages():
        render_message(message, html)

    if prompt := st.chat_input("Ask me about workouts, exercises, or nutrition..."):
        with st.chat_message("user", avatar=AVATARS[Role.USER]):
            st.write(prompt)
        with st.spinner("Thinking..."):
            result = gym_app.send_message(prompt)
        if isinstance(result, SubmitFailure) and result.rejected:
            st.toast(result.error)
        st.rerun()


def render_sidebar(gym_app: GymBuddyApp, view: StageView):
    with st.sidebar:
        st.header(gym_app.config.name)

        if view.stage is not Stage.CHATTING:
            return

        st.download_button(
            "Export chat",
            data=gym_app.export_history(),
            file_name=f"gym_buddy_chat_{datetime.now():%Y-%m-%d}.txt",
            mime="text/plain",
        )

        if st.button("New conversation"):
            gym_app.new_conversation()
            st.rerun()

        if not st.session_state.confirm_edit:
            if st.button("Edit profile"):
                st.session_state.confirm_edit = True
                st.rerun()
        else:
            st.warning("This will reset your profile and start over. Are you sure?")
            yes_col, no_col = st.columns(2)
            if yes_col.button("Yes, reset"):
                gym_app.edit_profile(confirmed=True)
                st.session_state.confirm_edit = False
                st.rerun()
            if no_col.button("Cancel"):
                st.session_state.confirm_edit = False
                st.rerun()

        if gym_app.config.debug:
            with st.expander("Debug"):
                st.json(gym_app.debug_info(), expanded=False)


def main():
    st.set_page_config(page_title="AI Gym Buddy", page_icon="💪")
    initialize_session_state()

    gym_app: GymBuddyApp = st.session_state.gym_app
    view = gym_app.view

    st.title(view.heading)

    if view.error:
        st.error(friendly_error_message(view.error))
        if st.button("Retry"):
            gym_app.start()
            st.rerun()
        return

    render_sidebar(gym_app, view)

    renderers = {
        Stage.WELCOME: render_welcome,
        Stage.ONBOARDING: render_onboarding,
        Stage.SUMMARY: render_summary,
        Stage.CHATTING: render_chat,
    }
    renderers[view.stage](gym_app, view)


if __name__ == "__main__":
    main()
