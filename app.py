"""
app.py
Streamlit dues tracker: members, contributions (cotisations) and who paid what.
Run: streamlit run app.py
"""

from __future__ import annotations

import pandas as pd
import streamlit as st

import auth
import backup
import config
import db
import engine
import reports
import utils
from errors import CotisationsError, ValidationError
from store import Store

st.set_page_config(page_title="Gestion des cotisations", layout="wide")

PAYMENT_ERROR_KEY = "payment_error"


def init_once():
    config.configure_logging()
    db.init_db()


def require_login():
    if auth.SESSION_KEY not in st.session_state:
        st.session_state[auth.SESSION_KEY] = None
    if "auth_mode" not in st.session_state:
        st.session_state.auth_mode = "login"


def show_error(exc: CotisationsError):
    if isinstance(exc, ValidationError):
        for e in exc.errors:
            st.error(e)
    else:
        st.error(str(exc))


def get_store() -> Store:
    # fresh snapshot on every rerun
    store = Store()
    store.refresh()
    return store


def login_screen():
    st.title("🔐 Connexion")

    email = st.text_input("Email")
    password = st.text_input("Mot de passe", type="password")
    c1, c2 = st.columns([1, 1])
    with c1:
        if st.button("Se connecter", type="primary"):
            if auth.sign_in(email, password):
                st.session_state[auth.SESSION_KEY] = email.strip().lower()
                st.rerun()
            else:
                st.error("Email ou mot de passe incorrect.")
    with c2:
        if st.button("Créer un compte"):
            st.session_state.auth_mode = "register"
            st.rerun()


def register_screen():
    st.title("📝 Créer un compte")

    email = st.text_input("Email")
    p1 = st.text_input("Mot de passe", type="password")
    p2 = st.text_input("Confirmer le mot de passe", type="password")
    c1, c2 = st.columns([1, 1])
    with c1:
        if st.button("S'inscrire", type="primary"):
            if p1 != p2:
                st.error("Les mots de passe ne correspondent pas.")
                return
            try:
                result = auth.sign_up(email, p1)
            except CotisationsError as exc:
                show_error(exc)
                return
            if result.requires_confirmation:
                st.info("Vérifiez votre boîte mail pour confirmer le compte.")
            else:
                st.session_state[auth.SESSION_KEY] = result.user.email
                st.session_state.auth_mode = "login"
                st.rerun()
    with c2:
        if st.button("J'ai déjà un compte"):
            st.session_state.auth_mode = "login"
            st.rerun()


def contribution_selector(store: Store, key: str, label: str = "Cotisation"):
    contributions = engine.sort_contributions(store.snapshot.contributions)
    if not contributions:
        return None
    default = store.default_contribution(st.session_state.get("selected_contribution_id"))
    ids = [c.id for c in contributions]
    chosen = st.selectbox(
        label,
        options=ids,
        index=ids.index(default.id) if default else 0,
        format_func=lambda i: next(f"{c.type} - {c.description}" for c in contributions if c.id == i),
        key=key,
    )
    st.session_state.selected_contribution_id = chosen
    return store.contribution(chosen)


def dashboard_page(store: Store):
    st.header("📊 Tableau de bord")

    contribution = contribution_selector(store, key="dash_contribution")
    summary = store.summary(contribution.id if contribution else None)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total des membres", len(store.snapshot.members))
    c2.metric("Cotisations collectées", utils.format_amount(summary.total_amount_collected))
    c3.metric("Membres ayant payé", summary.total_paid)
    c4.metric("Membres n'ayant pas payé", summary.total_unpaid)

    st.divider()

    if not contribution:
        st.caption("Aucune cotisation disponible. Créez une nouvelle cotisation pour commencer.")
        return

    st.subheader(contribution.type)
    st.write(contribution.description)
    line = f"Montant: **{utils.format_amount(contribution.montant_unitaire)}**"
    if contribution.date_echeance:
        line += f" | Échéance: **{utils.format_date(contribution.date_echeance)}**"
    st.write(line)

    st.progress(min(int(round(summary.payment_rate)), 100), text=f"{summary.payment_rate:.0f}% des membres ont payé")
    st.caption(f"{summary.total_paid} / {summary.total_members} membres ont payé")


def member_form(store: Store, existing=None):
    if existing:
        st.subheader(f"✏️ Modifier le membre (ID: {existing.id})")
    else:
        st.subheader("➕ Ajouter un membre")

    col1, col2 = st.columns(2)
    with col1:
        nom = st.text_input("Nom", value=(existing.nom if existing else ""))
        prenom = st.text_input("Prénom", value=(existing.prenom if existing else ""))
    with col2:
        telephone = st.text_input("Téléphone (optionnel)", value=(existing.telephone or "" if existing else ""))
        email = st.text_input("Email (optionnel)", value=(existing.email or "" if existing else ""))

    if st.button("Enregistrer", type="primary"):
        try:
            if existing:
                store.update_member(existing.id, nom, prenom, telephone, email)
                st.session_state.edit_member_id = None
            else:
                store.add_member(nom, prenom, telephone, email)
        except CotisationsError as exc:
            show_error(exc)
            return
        st.success("Membre enregistré.")
        st.rerun()


def members_page(store: Store):
    st.header("👥 Membres")

    with st.sidebar:
        search = st.text_input("Rechercher (nom/téléphone)")

    members = utils.filter_members(store.snapshot.members, search)
    df = utils.to_dataframe(members, utils.MEMBER_COLUMNS)
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        ids = [m.id for m in members]
        selected_id = st.selectbox(
            "Membre",
            options=[None] + ids,
            format_func=lambda i: "(aucun)" if i is None else next(m.full_name for m in members if m.id == i),
        )

    with colB:
        if selected_id is not None:
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Modifier"):
                    st.session_state.edit_member_id = selected_id
                    st.rerun()
            with c2:
                confirm = st.checkbox("Confirmer la suppression", value=False, key="del_member")
                if st.button("Supprimer", disabled=not confirm):
                    try:
                        store.delete_member(selected_id)
                    except CotisationsError as exc:
                        show_error(exc)
                        return
                    st.success("Membre supprimé.")
                    st.rerun()

    st.divider()

    existing = next((m for m in store.snapshot.members if m.id == st.session_state.get("edit_member_id")), None)
    if existing:
        member_form(store, existing=existing)
        if st.button("Annuler"):
            st.session_state.edit_member_id = None
            st.rerun()
    else:
        member_form(store)


def contribution_form(store: Store, existing=None):
    if existing:
        st.subheader(f"✏️ Modifier la cotisation (ID: {existing.id})")
    else:
        st.subheader("➕ Nouvelle cotisation")

    col1, col2 = st.columns(2)
    with col1:
        type_ = st.text_input("Type", value=(existing.type if existing else ""))
        description = st.text_input("Description", value=(existing.description if existing else ""))
    with col2:
        montant = st.text_input("Montant unitaire", value=(f"{existing.montant_unitaire:g}" if existing else ""))
        date_echeance = st.text_input(
            "Échéance (AAAA-MM-JJ, optionnelle)", value=(existing.date_echeance or "" if existing else "")
        )

    if st.button("Enregistrer la cotisation", type="primary"):
        try:
            if existing:
                store.update_contribution(existing.id, type_, description, montant, date_echeance)
                st.session_state.edit_contribution_id = None
            else:
                store.add_contribution(type_, description, montant, date_echeance)
        except CotisationsError as exc:
            show_error(exc)
            return
        st.success("Cotisation enregistrée.")
        st.rerun()


def contributions_page(store: Store):
    st.header("💰 Cotisations")

    rows = []
    for c in engine.sort_contributions(store.snapshot.contributions):
        s = store.summary(c.id)
        rows.append({
            "id": c.id,
            "type": c.type,
            "description": c.description,
            "montant": utils.format_amount(c.montant_unitaire),
            "échéance": utils.format_date(c.date_echeance) if c.date_echeance else "",
            "payé": f"{s.total_paid}/{s.total_members}",
        })
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)

    st.divider()

    ids = [c.id for c in store.snapshot.contributions]
    selected_id = st.selectbox(
        "Cotisation",
        options=[None] + ids,
        format_func=lambda i: "(aucune)" if i is None else store.contribution(i).type,
    )
    if selected_id is not None:
        c1, c2, c3 = st.columns(3)
        with c1:
            if st.button("Voir les paiements"):
                st.session_state.selected_contribution_id = selected_id
                st.session_state.page = "Paiements"
                st.rerun()
        with c2:
            if st.button("Modifier"):
                st.session_state.edit_contribution_id = selected_id
                st.rerun()
        with c3:
            confirm = st.checkbox("Confirmer la suppression", value=False, key="del_contribution")
            if st.button("Supprimer", disabled=not confirm):
                try:
                    store.delete_contribution(selected_id)
                except CotisationsError as exc:
                    show_error(exc)
                    return
                st.success("Cotisation supprimée.")
                st.rerun()

    st.divider()

    existing = store.contribution(st.session_state.get("edit_contribution_id"))
    if existing:
        contribution_form(store, existing=existing)
        if st.button("Annuler"):
            st.session_state.edit_contribution_id = None
            st.rerun()
    else:
        contribution_form(store)


def payments_page(store: Store):
    st.header("💳 Paiements")

    error = st.session_state.pop(PAYMENT_ERROR_KEY, None)
    if error:
        show_error(error)

    if not store.snapshot.members:
        st.info("Aucun membre. Ajoutez d'abord un membre.")
        return

    contribution = contribution_selector(store, key="pay_contribution")
    if not contribution:
        st.info("Aucune cotisation. Créez d'abord une cotisation.")
        return

    summary = store.summary(contribution.id)
    c1, c2, c3 = st.columns(3)
    c1.metric("Payé", f"{summary.total_paid}/{summary.total_members}")
    c2.metric("Collecté", utils.format_amount(summary.total_amount_collected))
    c3.metric("Restant", utils.format_amount(summary.total_amount_due))

    payment_date = st.date_input("Date de paiement", value=None)
    search = st.text_input("Rechercher un membre")

    st.divider()

    paid_on = payment_date.isoformat() if payment_date else None
    for status in utils.filter_statuses(store.statuses(contribution.id), search):
        col1, col2, col3 = st.columns([3, 2, 1])
        with col1:
            st.write(f"**{status.member.full_name}**  {status.member.telephone or ''}")
        with col2:
            if status.paid and status.payment_date:
                st.caption(f"Payé le {utils.format_date(status.payment_date)}")
            else:
                st.caption("Payé" if status.paid else "Non payé")
        with col3:
            key = f"paid_{contribution.id}_{status.member.id}"
            st.toggle(
                "Payé",
                value=status.paid,
                key=key,
                on_change=apply_toggle,
                args=(store, st.session_state, key, status.member.id, contribution.id, status.payment_id, paid_on),
            )


def apply_toggle(store: Store, session, key: str, member_id: int, contribution_id: int, payment_id, payment_date):
    """
    on_change callback of a payment toggle. When the write fails the widget
    key is dropped so the toggle is redrawn from the stored status.
    """
    try:
        store.set_payment_status(member_id, contribution_id, session[key], payment_date, payment_id=payment_id)
    except CotisationsError as exc:
        del session[key]
        session[PAYMENT_ERROR_KEY] = exc


def reports_page(store: Store):
    st.header("🧾 Rapports")

    r = store.rollup()
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Membres", len(store.snapshot.members))
    c2.metric("Cotisations", len(store.snapshot.contributions))
    c3.metric("Total collecté", utils.format_amount(r.total_collected))
    c4.metric("Taux de paiement", f"{r.payment_rate:.0f}%")

    st.divider()

    st.subheader("Rapport global")
    doc = reports.build_report(store.snapshot, detailed_payments=store.payments_repo.list_detailed())
    for name, df in doc.sections.items():
        st.caption(name)
        st.dataframe(df, use_container_width=True, hide_index=True)
    st.download_button("Télécharger (HTML)", data=reports.render_html(doc), file_name="rapport.html", mime="text/html")

    st.divider()

    st.subheader("Rapport par cotisation")
    contribution = contribution_selector(store, key="report_contribution")
    if contribution:
        doc = reports.build_report(store.snapshot, contribution)
        st.dataframe(doc.sections["Paiements"], use_container_width=True, hide_index=True)
        c1, c2 = st.columns(2)
        with c1:
            st.download_button(
                "Télécharger (HTML)", data=reports.render_html(doc),
                file_name=f"rapport_{contribution.id}.html", mime="text/html", key="dl_html_one",
            )
        with c2:
            st.download_button(
                "Télécharger (CSV)", data=reports.render_csv(doc),
                file_name=f"rapport_{contribution.id}.csv", mime="text/csv", key="dl_csv_one",
            )

    st.divider()

    st.subheader("Exports CSV")
    c1, c2, c3 = st.columns(3)
    with c1:
        st.download_button("membres.csv", data=utils.members_to_csv_bytes(store.snapshot.members),
                           file_name="membres.csv", mime="text/csv")
    with c2:
        st.download_button("cotisations.csv", data=utils.contributions_to_csv_bytes(store.snapshot.contributions),
                           file_name="cotisations.csv", mime="text/csv")
    with c3:
        st.download_button("paiements.csv", data=utils.payments_to_csv_bytes(store.payments_repo.list_detailed()),
                           file_name="paiements.csv", mime="text/csv")


def settings_page(store: Store):
    st.header("⚙️ Paramètres")

    user = auth.get_current_user(st.session_state)

    st.subheader("Profil")
    new_email = st.text_input("Email", value=user.email)
    current = st.text_input("Mot de passe actuel", type="password")
    p1 = st.text_input("Nouveau mot de passe (optionnel)", type="password")
    p2 = st.text_input("Confirmer le nouveau mot de passe", type="password")
    if st.button("Mettre à jour le profil", type="primary"):
        if p1 != p2:
            st.error("Les mots de passe ne correspondent pas.")
        else:
            try:
                updated = auth.update_profile(user.email, current, new_email=new_email, new_password=p1 or None)
            except CotisationsError as exc:
                show_error(exc)
            else:
                st.session_state[auth.SESSION_KEY] = updated.email
                st.success("Profil mis à jour.")

    st.divider()

    st.subheader("Sauvegardes")
    if st.button("Créer une sauvegarde"):
        path = backup.create_backup(store.snapshot, config.BACKUP_DIR)
        st.success(f"Sauvegarde créée: {path.name}")

    backups = backup.list_backups(config.BACKUP_DIR)
    if backups:
        chosen = st.selectbox("Sauvegarde", backups, format_func=lambda p: p.name)
        try:
            data = backup.load_backup(chosen)
        except CotisationsError as exc:
            show_error(exc)
            data = None
        else:
            st.json(backup.describe_backup(data))
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Restaurer", disabled=data is None):
                try:
                    store.restore(data)
                except CotisationsError as exc:
                    show_error(exc)
                else:
                    st.success("Les données ont été restaurées.")
                    st.rerun()
        with c2:
            if st.button("Supprimer la sauvegarde"):
                backup.delete_backup(chosen)
                st.rerun()
    else:
        st.caption("Aucune sauvegarde trouvée.")

    st.divider()

    st.subheader("Réinitialiser les données")
    confirm = st.checkbox("Je comprends que cette action est irréversible", key="reset_confirm")
    if st.button("Réinitialiser", disabled=not confirm):
        path = backup.create_backup(store.snapshot, config.BACKUP_DIR)
        store.reset()
        st.success(f"Données supprimées. Une sauvegarde a été créée: {path.name}")
        st.rerun()

    st.divider()

    st.subheader("Données d'exemple")
    st.caption("Ajoute 3 membres, 2 cotisations et quelques paiements (nouvelles lignes à chaque fois).")
    if st.button("Insérer des données d'exemple"):
        try:
            utils.insert_sample_data(store)
        except CotisationsError as exc:
            show_error(exc)
        else:
            st.success("Données d'exemple insérées.")
            st.rerun()


def main_app():
    user = auth.get_current_user(st.session_state)
    st.sidebar.title("💼 Cotisations")
    st.sidebar.caption(f"Connecté: {user.email}")

    pages = ["Tableau de bord", "Membres", "Cotisations", "Paiements", "Rapports", "Paramètres"]
    if "page" not in st.session_state:
        st.session_state.page = "Tableau de bord"
    st.session_state.page = st.sidebar.radio("Navigation", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Se déconnecter"):
        auth.sign_out(st.session_state)
        st.rerun()

    try:
        store = get_store()
    except CotisationsError as exc:
        show_error(exc)
        return

    if st.session_state.page == "Tableau de bord":
        dashboard_page(store)
    elif st.session_state.page == "Membres":
        members_page(store)
    elif st.session_state.page == "Cotisations":
        contributions_page(store)
    elif st.session_state.page == "Paiements":
        payments_page(store)
    elif st.session_state.page == "Rapports":
        reports_page(store)
    elif st.session_state.page == "Paramètres":
        settings_page(store)


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not auth.is_authenticated(st.session_state):
        if st.session_state.auth_mode == "register":
            register_screen()
        else:
            login_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
